from django.http import JsonResponse
from django.views.decorators.http import require_POST

from apps.common.utils.forms import form_errors_as_list
from apps.common.utils.http import htmx_trigger_response, is_htmx_request, json_workflow_view
from apps.contact.forms import ContactForm
from apps.contact.services import submit_contact_message


@require_POST
@json_workflow_view
def contact_submit(request):
    form = ContactForm(request.POST)
    if not form.is_valid():
        return JsonResponse({"errors": form_errors_as_list(form)}, status=400)

    contact_message = submit_contact_message(**form.cleaned_data)
    if is_htmx_request(request):
        return htmx_trigger_response(
            {
                "show-sweet-alert": {
                    "icon": "success",
                    "title": "Message sent",
                    "text": "We'll get back to you as soon as possible.",
                }
            }
        )
    return JsonResponse({"id": contact_message.pk, "success": True}, status=201)
