from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.http import require_POST

from apps.common.utils.forms import form_errors_as_list
from apps.common.utils.http import htmx_trigger_response, is_htmx_request, json_workflow_view
from apps.payments.forms import MobilePaymentForm
from apps.payments.services import initiate_payment, tel_uri


@login_required
@require_POST
@json_workflow_view
def mobile_payment_initiate(request):
    form = MobilePaymentForm(request.POST, user=request.user)
    if not form.is_valid():
        return JsonResponse({"errors": form_errors_as_list(form)}, status=400)

    payment = initiate_payment(
        form.cleaned_data["provider"],
        form.cleaned_data.get("amount"),
        form.cleaned_data.get("phone_number") or "",
        request.user,
        booking=form.cleaned_data.get("booking"),
        enrollment=form.cleaned_data.get("enrollment"),
    )
    payload = {
        "id": payment.pk,
        "status": payment.status,
        "method": payment.method,
        "amount": payment.amount,
        "currency": payment.currency,
        "ussd_code": payment.ussd_code,
        "tel_uri": tel_uri(payment.ussd_code),
    }
    if is_htmx_request(request):
        return htmx_trigger_response(
            {
                "dial-ussd": payload,
                "show-sweet-alert": {
                    "icon": "info",
                    "title": "Payment Initiated",
                    "text": "Please complete the payment on your phone",
                },
            }
        )
    return JsonResponse(payload, status=201)
