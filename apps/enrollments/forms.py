from django import forms

from apps.classes.models import Class
from apps.common.models import Weekday
from apps.enrollments.models import EnrollmentStatus, ScheduleType


class EnrollmentCreateForm(forms.Form):
    klass = forms.ModelChoiceField(
        queryset=Class.objects.filter(is_active=True).order_by("title"),
        label="Class",
        widget=forms.Select(attrs={"class": "form-select"}),
    )
    schedule_type = forms.ChoiceField(
        choices=ScheduleType.choices,
        initial=ScheduleType.REGULAR,
        label="Class type",
        widget=forms.RadioSelect,
    )
    selected_days = forms.MultipleChoiceField(
        choices=Weekday.choices,
        required=False,
        label="Preferred days",
        widget=forms.CheckboxSelectMultiple,
    )


class StatusChangeForm(forms.Form):
    status = forms.ChoiceField(choices=EnrollmentStatus.choices, label="Status")
    version = forms.IntegerField(required=False, min_value=0, widget=forms.HiddenInput)
    note = forms.CharField(required=False, max_length=255, label="Note")

    def __init__(self, *args, **kwargs):
        choices = kwargs.pop("status_choices", None)
        super().__init__(*args, **kwargs)
        if choices is not None:
            self.fields["status"].choices = choices
