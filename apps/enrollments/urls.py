from django.urls import path

from . import views

app_name = "enrollments"

urlpatterns = [
    path("", views.enrollment_list, name="list"),
    path("new/", views.enrollment_create, name="create"),
    path("<int:pk>/status/", views.enrollment_set_status, name="set_status"),
    path("<int:pk>/confirm/", views.enrollment_confirm, name="confirm"),
    path("<int:pk>/delete/", views.enrollment_delete, name="delete"),
]
