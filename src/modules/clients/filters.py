import django_filters

from modules.clients.models import Client


class ClientFilter(django_filters.FilterSet):
    name = django_filters.CharFilter(field_name="name", lookup_expr="icontains")
    email = django_filters.CharFilter(field_name="email", lookup_expr="iexact")
    company = django_filters.CharFilter(field_name="company", lookup_expr="icontains")
    active = django_filters.BooleanFilter(field_name="is_active")

    class Meta:
        model = Client
        fields = ["name", "email", "company", "active"]
