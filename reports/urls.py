"""
URL configuration for CampusFix Reports API.

All report endpoints are under /api/v1/reports/
"""

from django.urls import path

from .views import (
    ReportListCreateView,
    CampusFeedView,
    ReportDetailView,
    ResolverCandidatesView,
    AssignReportView,
    RejectReportView,
    StartProgressView,
    CompleteReportView,
    ConversationView,
    UpvoteView,
)

app_name = 'reports'

urlpatterns = [
    path('', ReportListCreateView.as_view(), name='report-list'),
    path('campus/', CampusFeedView.as_view(), name='campus-feed'),
    path('resolvers/', ResolverCandidatesView.as_view(), name='resolver-candidates'),
    path('<uuid:report_id>/', ReportDetailView.as_view(), name='report-detail'),

    # Lifecycle actions
    path('<uuid:report_id>/assign/', AssignReportView.as_view(), name='report-assign'),
    path('<uuid:report_id>/reject/', RejectReportView.as_view(), name='report-reject'),
    path('<uuid:report_id>/start/', StartProgressView.as_view(), name='report-start'),
    path('<uuid:report_id>/complete/', CompleteReportView.as_view(), name='report-complete'),

    # Collaboration
    path('<uuid:report_id>/conversation/', ConversationView.as_view(), name='report-conversation'),
    path('<uuid:report_id>/upvote/', UpvoteView.as_view(), name='report-upvote'),
]
