"""
Main URL mapping configuration file.

Include other URLConfs from external apps using method `include()`.

It is also a good practice to keep a single URL to the root index page.

The public file routes mirror the storage layout, so the base URL of the
storage root can point straight at this server.
"""

from django.contrib import admin
from django.urls import include, path, re_path

from server.apps.files import views as file_views

admin.autodiscover()

urlpatterns = [
    # Apps:
    path('v1/file/', include('server.apps.files.urls', namespace='files')),

    # Health checks:
    path('health/', file_views.health, name='health'),

    # django-admin:
    path('admin/', admin.site.urls),

    # Stored content:
    re_path(
        r'^(?P<directory>notes|css|files)/(?P<path>.+)$',
        file_views.serve_file,
        name='serve_file',
    ),
]
