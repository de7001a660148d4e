import django_filters
from django import forms
from django.db.models import Q

from apps.classes.models import Class, ClassCategory
from apps.enrollments.models import Enrollment, EnrollmentStatus, ScheduleType


class EnrollmentFilter(django_filters.FilterSet):
    klass = django_filters.ModelChoiceFilter(
        queryset=Class.objects.all(),
        label="Class",
        widget=forms.Select(attrs={"class": "form-select"}),
    )
    category = django_filters.ChoiceFilter(
        field_name="klass__category",
        choices=ClassCategory.choices,
        label="Category",
    )
    status = django_filters.ChoiceFilter(
        field_name="payment_status",
        choices=EnrollmentStatus.choices,
        label="Status",
    )
    schedule_type = django_filters.ChoiceFilter(
        method="filter_schedule_type",
        choices=ScheduleType.choices,
        label="Class type",
    )
    query = django_filters.CharFilter(
        method="filter_query",
        label="Search",
        widget=forms.TextInput(
            attrs={"class": "form-control", "placeholder": "Name / phone / username / class"}
        ),
    )

    def filter_schedule_type(self, queryset, name, value):
        if value == ScheduleType.PRIVATE:
            return queryset.filter(schedule__isnull=False)
        if value == ScheduleType.REGULAR:
            return queryset.filter(schedule__isnull=True)
        return queryset

    def filter_query(self, queryset, name, value):
        if not value:
            return queryset
        return queryset.filter(
            Q(user__first_name__icontains=value)
            | Q(user__last_name__icontains=value)
            | Q(user__phone__icontains=value)
            | Q(user__username__icontains=value)
            | Q(klass__title__icontains=value)
        )

    class Meta:
        model = Enrollment
        fields = ["klass", "category", "status", "schedule_type", "query"]
