from django import forms


class ContactForm(forms.Form):
    name = forms.CharField(max_length=150, label="Name")
    email = forms.EmailField(label="E-mail")
    phone = forms.CharField(max_length=20, required=False, label="Phone")
    message = forms.CharField(widget=forms.Textarea(attrs={"rows": 5}), label="Message")
