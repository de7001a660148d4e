from django import forms
from django.db.models import Q
from django_filters import rest_framework as filters

from apps.bookings.models import Booking, BookingStatus
from apps.events.models import Event


class BookingFilter(filters.FilterSet):
    event = filters.ModelChoiceFilter(
        queryset=Event.objects.all(),
        label="Event",
        widget=forms.Select(attrs={"class": "form-select"}),
    )
    status = filters.ChoiceFilter(choices=BookingStatus.choices, label="Status")
    created = filters.DateFromToRangeFilter(
        field_name="created_at",
        label="Booked (from... to...)",
    )
    query = filters.CharFilter(
        method="filter_query",
        label="Search",
        widget=forms.TextInput(attrs={"class": "form-control", "placeholder": "Name / phone / event"}),
    )

    def filter_query(self, queryset, name, value):
        if not value:
            return queryset
        return queryset.filter(
            Q(user__first_name__icontains=value)
            | Q(user__last_name__icontains=value)
            | Q(user__phone__icontains=value)
            | Q(event__title__icontains=value)
        )

    class Meta:
        model = Booking
        fields = ["event", "status", "created", "query"]
