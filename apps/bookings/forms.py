from django import forms

from apps.events.models import Event, EventStatus


class BookingCreateForm(forms.Form):
    event = forms.ModelChoiceField(
        queryset=Event.objects.filter(status=EventStatus.UPCOMING).order_by("start_time"),
        label="Event",
        widget=forms.Select(attrs={"class": "form-select"}),
    )
