"""URL routing for the governance dashboard API.


The /api/ namespace exposes users, proposals and governance-contract calls.
Unknown routes answer with the same JSON envelope as the API.
"""

from django.contrib import admin
from django.urls import path, include


urlpatterns = [
	path("admin/", admin.site.urls),
	path("api/", include("api.urls")),
]

handler404 = "api.views_ops.route_not_found"
handler500 = "api.views_ops.server_error"
