from django.contrib.auth.decorators import login_required
from django.core.exceptions import PermissionDenied
from django.core.paginator import EmptyPage, Paginator
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET, require_POST

from apps.accounts.services import role_flags
from apps.bookings.filters import BookingFilter
from apps.bookings.forms import BookingCreateForm
from apps.bookings.models import Booking, BookingStatus
from apps.bookings.services import create_booking, set_booking_status
from apps.common.utils.forms import form_errors_as_list
from apps.common.utils.http import htmx_trigger_response, is_htmx_request, json_workflow_view
from apps.enrollments.forms import StatusChangeForm


def serialize_booking(booking: Booking) -> dict:
    return {
        "id": booking.pk,
        "user": booking.user_id,
        "event": booking.event_id,
        "event_title": booking.event.title,
        "status": booking.status,
        "version": booking.version,
        "amount": booking.amount,
        "currency": booking.currency,
        "created_at": booking.created_at.isoformat(),
    }


@login_required
@require_GET
def booking_list(request):
    if not role_flags(request.user)["can_manage"]:
        raise PermissionDenied
    base_qs = Booking.objects.select_related("user", "event")
    booking_filter = BookingFilter(request.GET or None, queryset=base_qs)

    try:
        per_page = int(request.GET.get("per_page", 20))
        if per_page <= 0:
            raise ValueError
    except (TypeError, ValueError):
        per_page = 20

    try:
        page_number = int(request.GET.get("page", 1))
    except (TypeError, ValueError):
        page_number = 1

    paginator = Paginator(booking_filter.qs, per_page)
    try:
        page_obj = paginator.page(page_number)
    except EmptyPage:
        page_obj = paginator.page(1)

    return JsonResponse(
        {
            "count": paginator.count,
            "page": page_obj.number,
            "num_pages": paginator.num_pages,
            "results": [serialize_booking(b) for b in page_obj.object_list],
        }
    )


@login_required
@require_POST
@json_workflow_view
def booking_create(request):
    form = BookingCreateForm(request.POST)
    if not form.is_valid():
        return JsonResponse({"errors": form_errors_as_list(form)}, status=400)

    booking = create_booking(request.user, form.cleaned_data["event"])
    if is_htmx_request(request):
        return htmx_trigger_response(
            {
                "reload-bookings": True,
                "show-sweet-alert": {"icon": "success", "title": f"Booked {booking.event.title}"},
            }
        )
    return JsonResponse(serialize_booking(booking), status=201)


@login_required
@require_POST
@json_workflow_view
def booking_set_status(request, pk):
    booking = get_object_or_404(Booking, pk=pk)
    form = StatusChangeForm(request.POST, status_choices=BookingStatus.choices)
    if not form.is_valid():
        return JsonResponse({"errors": form_errors_as_list(form)}, status=400)

    booking = set_booking_status(
        booking,
        form.cleaned_data["status"],
        request.user,
        expected_version=form.cleaned_data.get("version"),
        note=form.cleaned_data.get("note") or "",
    )
    if is_htmx_request(request):
        return htmx_trigger_response(
            {
                "reload-bookings": True,
                "show-sweet-alert": {
                    "icon": "success",
                    "title": f"Booking status updated to {booking.status}",
                },
            }
        )
    return JsonResponse(serialize_booking(booking))
