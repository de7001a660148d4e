from django import forms

from apps.bookings.models import Booking
from apps.enrollments.models import Enrollment


class MobilePaymentForm(forms.Form):
    provider = forms.CharField(max_length=10, label="Provider")
    phone_number = forms.CharField(
        max_length=20,
        required=False,
        label="Phone number",
        widget=forms.TextInput(attrs={"type": "tel", "placeholder": "07XX XXX XXX"}),
    )
    amount = forms.IntegerField(required=False, min_value=0, label="Amount")
    booking = forms.ModelChoiceField(queryset=Booking.objects.none(), required=False)
    enrollment = forms.ModelChoiceField(queryset=Enrollment.objects.none(), required=False)

    def __init__(self, *args, user=None, **kwargs):
        super().__init__(*args, **kwargs)
        if user is not None:
            self.fields["booking"].queryset = Booking.objects.filter(user=user)
            self.fields["enrollment"].queryset = Enrollment.objects.filter(user=user).select_related("klass")
