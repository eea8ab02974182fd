import django_filters

from commissions.models import CommissionInvoice


class CommissionInvoiceFilter(django_filters.FilterSet):
    created_from = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    created_to = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")
    has_partner = django_filters.BooleanFilter(field_name="establishment", lookup_expr="isnull", exclude=True)

    class Meta:
        model = CommissionInvoice
        fields = ["status", "provider", "establishment", "needs_review"]
