"""Query-string filters for report listings."""

from django_filters import rest_framework as filters

from .models import Report, ReportPriority, ReportStatus


class ReportFilter(filters.FilterSet):
    """Filter reports by status and priority."""

    status = filters.CharFilter(method='filter_status')
    priority = filters.ChoiceFilter(choices=ReportPriority.CHOICES)

    class Meta:
        model = Report
        fields = ['status', 'priority']

    def filter_status(self, queryset, name, value):
        # 'completed' also matches rows still stored with the legacy value
        return queryset.with_status(ReportStatus.normalize(value))
