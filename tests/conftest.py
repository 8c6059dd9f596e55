import pytest
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from rest_framework.test import APIClient

from modules.clients.models import Client
from modules.clients.repositories.django_repository import ClientDjangoRepository
from modules.core.actors import Actor, Role
from modules.orders.dtos import ChooseDeliveryDTO, CreateOrderDTO
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.orders.stages import PREPRESS_SUB_PROCESSES


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Users and actors
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_user():
    """Factory creating an active user in the group for *role*."""
    counter = {"n": 0}

    def _make(role: str, username: str | None = None):
        counter["n"] += 1
        user = get_user_model().objects.create_user(
            username=username or f"{role}-{counter['n']}",
            password="pass-1234",
        )
        if role != Role.CLIENT:
            group, _ = Group.objects.get_or_create(name=role)
            user.groups.add(group)
        return user

    return _make


@pytest.fixture()
def designer_user(make_user):
    return make_user(Role.EMPLOYEE, "designer")


@pytest.fixture()
def prepress_user(make_user):
    return make_user(Role.PREPRESS, "prepress")


@pytest.fixture()
def manager_user(make_user):
    return make_user(Role.MANAGER, "manager")


@pytest.fixture()
def courier_user(make_user):
    return make_user(Role.COURIER, "courier")


@pytest.fixture()
def client_user(make_user):
    return make_user(Role.CLIENT, "client")


@pytest.fixture()
def designer(designer_user):
    return Actor.from_user(designer_user)


@pytest.fixture()
def prepress(prepress_user):
    return Actor.from_user(prepress_user)


@pytest.fixture()
def manager(manager_user):
    return Actor.from_user(manager_user)


@pytest.fixture()
def courier(courier_user):
    return Actor.from_user(courier_user)


@pytest.fixture()
def client_actor(client_user):
    return Actor.from_user(client_user)


# ---------------------------------------------------------------------------
# Domain records
# ---------------------------------------------------------------------------


@pytest.fixture()
def client_record(client_user):
    """Client profile owned by ``client_user``."""
    return Client.objects.create(
        name="Acme Printing",
        email="orders@acme.example.com",
        address={
            "street": "12 Harbour Road",
            "city": "Dubai",
            "state": "",
            "postal_code": "00000",
            "country": "AE",
        },
        user_ref=str(client_user.pk),
    )


@pytest.fixture()
def order_service():
    return OrderService(
        order_repository=OrderDjangoRepository(),
        client_repository=ClientDjangoRepository(),
    )


@pytest.fixture()
def order(order_service, client_record, client_actor):
    """A freshly submitted order, owned by ``client_actor``."""
    return order_service.create_order(
        CreateOrderDTO(client_id=client_record.id, title="Business cards"),
        client_actor,
    )


@pytest.fixture()
def advance(order_service, designer, prepress):
    """Drive an order through the happy path up to *target* status.

    Supported targets: Designing, Design Done, In Prepress,
    Ready for Delivery.  Reaching Ready for Delivery chooses *mode* first.
    """

    def _advance(order, target, mode="direct"):
        order_id = str(order.id)
        steps = ["Designing", "Design Done", "In Prepress", "Ready for Delivery"]
        for status in steps[: steps.index(target) + 1]:
            if status == "Design Done":
                order_service.record_attachment(
                    order_id, "design", "link", "https://files.test/artwork.pdf", designer
                )
            if status == "Ready for Delivery":
                for name in PREPRESS_SUB_PROCESSES:
                    order_service.complete_sub_process(order_id, "prepress", name, prepress)
                order_service.choose_delivery_mode(
                    order_id,
                    ChooseDeliveryDTO(
                        mode=mode,
                        shipment_company="Middle East" if mode == "shipping-company" else None,
                    ),
                    designer,
                )
            order = order_service.transition(order_id, status, designer)
        return order_service.get_order(order_id)

    return _advance
