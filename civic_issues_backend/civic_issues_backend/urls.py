from django.contrib import admin
from django.urls import path, include
from django.http import JsonResponse

# Root view to avoid 404 at "/"
def root_view(request):
    return JsonResponse({
        "message": "Welcome to the Civic Issues API",
        "endpoints": {
            "users": "/api/users/",
            "zones": "/api/zones/",
            "issues": "/api/issues/",
            "issue_stats": "/api/issues/stats/",
            "issue_markers": "/api/issues/markers/",
        }
    })

urlpatterns = [
    path('admin/', admin.site.urls),

    # Root handler
    path('', root_view, name='root'),

    path('api/users/', include('users.urls')),
    path('api/zones/', include('zones.urls')),
    path('api/issues/', include('issues.urls')),
]
