"""
API v1 URL Configuration.

All API endpoints for version 1.
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views.users import AuthViewSet
from .views.project import ProjectViewSet, ProjectMemberViewSet
from .views.milestones import MilestoneViewSet
from .views.tasks import TaskViewSet

# Create router
router = DefaultRouter()

# Auth
router.register(r'auth', AuthViewSet, basename='auth')

# Projects
router.register(r'projects', ProjectViewSet, basename='projects')
router.register(r'members', ProjectMemberViewSet, basename='members')
router.register(r'milestones', MilestoneViewSet, basename='milestones')
router.register(r'tasks', TaskViewSet, basename='tasks')

app_name = 'api_v1'

urlpatterns = [
    path('', include(router.urls)),
]
