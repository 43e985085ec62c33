import django_filters

from modules.subscriptions.models import SubscriptionOrder


class SubscriptionOrderFilter(django_filters.FilterSet):
    college = django_filters.CharFilter(field_name="college", lookup_expr="icontains")
    active_on = django_filters.DateFilter(method="filter_active_on")
    starts_after = django_filters.DateFilter(field_name="start_date", lookup_expr="gte")
    ends_before = django_filters.DateFilter(field_name="end_date", lookup_expr="lte")

    class Meta:
        model = SubscriptionOrder
        fields = ["college", "active_on", "starts_after", "ends_before"]

    def filter_active_on(self, queryset, name, value):
        return queryset.filter(start_date__lte=value, end_date__gte=value)
