from django.urls import path

from . import views

app_name = "payments"

urlpatterns = [
    path("mobile/", views.mobile_payment_initiate, name="mobile_initiate"),
]
