"""URL routes of the file API, mounted under ``/v1/file/``."""

from django.urls import path

from server.apps.files import views

app_name = 'files'

urlpatterns = [
    path('check-css', views.check_css, name='check_css'),
    path('create-note', views.create_note, name='create_note'),
    path('check-file', views.check_file, name='check_file'),
    path('check-files', views.check_files, name='check_files'),
    path('upload', views.upload, name='upload'),
    path('delete', views.delete, name='delete'),
]
