from django.contrib.auth.decorators import login_required
from django.core.exceptions import PermissionDenied
from django.core.paginator import EmptyPage, Paginator
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET, require_POST

from apps.accounts.services import role_flags
from apps.common.utils.forms import form_errors_as_list
from apps.common.utils.http import htmx_trigger_response, is_htmx_request, json_workflow_view
from apps.enrollments.filters import EnrollmentFilter
from apps.enrollments.forms import EnrollmentCreateForm, StatusChangeForm
from apps.enrollments.models import Enrollment
from apps.enrollments.services import (
    confirm_enrollment,
    create_enrollment,
    delete_enrollment,
    enrollment_price,
    set_enrollment_status,
)


def serialize_enrollment(enrollment: Enrollment) -> dict:
    kind = enrollment.kind
    klass = enrollment.klass
    return {
        "id": enrollment.pk,
        "user": enrollment.user_id,
        "class": klass.pk if klass else None,
        "class_title": klass.title if klass else None,
        "status": enrollment.payment_status,
        "version": enrollment.version,
        "type": kind.schedule_type,
        "selected_days": list(kind.days),
        "price": enrollment_price(enrollment),
        "currency": klass.currency if klass else None,
        "enrolled_at": enrollment.enrolled_at.isoformat(),
    }


def _require_manage_permission(user):
    if not role_flags(user)["can_manage"]:
        raise PermissionDenied


@login_required
@require_GET
def enrollment_list(request):
    _require_manage_permission(request.user)
    base_qs = Enrollment.objects.select_related("user", "klass", "schedule")
    enrollment_filter = EnrollmentFilter(request.GET or None, queryset=base_qs)

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

    paginator = Paginator(enrollment_filter.qs, per_page)
    try:
        page_obj = paginator.page(page_number)
    except EmptyPage:
        page_obj = paginator.page(1)

    return JsonResponse(
        {
            "count": paginator.count,
            "page": page_obj.number,
            "num_pages": paginator.num_pages,
            "results": [serialize_enrollment(e) for e in page_obj.object_list],
        }
    )


@login_required
@require_POST
@json_workflow_view
def enrollment_create(request):
    form = EnrollmentCreateForm(request.POST)
    if not form.is_valid():
        return JsonResponse({"errors": form_errors_as_list(form)}, status=400)

    enrollment = create_enrollment(
        request.user,
        form.cleaned_data["klass"],
        form.cleaned_data["schedule_type"],
        form.cleaned_data.get("selected_days"),
    )
    if is_htmx_request(request):
        return htmx_trigger_response(
            {
                "reload-enrollments": True,
                "show-sweet-alert": {
                    "icon": "success",
                    "title": f"Enrolled in {enrollment.klass.title}",
                },
            }
        )
    return JsonResponse(serialize_enrollment(enrollment), status=201)


@login_required
@require_POST
@json_workflow_view
def enrollment_set_status(request, pk):
    enrollment = get_object_or_404(Enrollment, pk=pk)
    form = StatusChangeForm(request.POST)
    if not form.is_valid():
        return JsonResponse({"errors": form_errors_as_list(form)}, status=400)

    enrollment = set_enrollment_status(
        enrollment,
        form.cleaned_data["status"],
        request.user,
        expected_version=form.cleaned_data.get("version"),
        note=form.cleaned_data.get("note") or "",
    )
    if is_htmx_request(request):
        return htmx_trigger_response(
            {
                "reload-enrollments": True,
                "show-sweet-alert": {
                    "icon": "success",
                    "title": f"Enrollment status updated to {enrollment.payment_status}",
                },
            }
        )
    return JsonResponse(serialize_enrollment(enrollment))


@login_required
@require_POST
@json_workflow_view
def enrollment_confirm(request, pk):
    enrollment = get_object_or_404(Enrollment, pk=pk)
    enrollment = confirm_enrollment(enrollment, request.user)
    return JsonResponse(serialize_enrollment(enrollment))


@login_required
@require_POST
@json_workflow_view
def enrollment_delete(request, pk):
    enrollment = get_object_or_404(Enrollment, pk=pk)
    delete_enrollment(enrollment, request.user)
    return JsonResponse({"deleted": pk})
