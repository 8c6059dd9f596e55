from __future__ import annotations

import random
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.core.management.base import BaseCommand
from django.utils import timezone

from modules.clients.models import Client
from modules.clients.repositories.django_repository import ClientDjangoRepository
from modules.core.actors import Actor, Role
from modules.orders.constants import OrderStatus, StageName
from modules.orders.dtos import ChooseDeliveryDTO, CreateOrderDTO
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.orders.stages import PREPRESS_SUB_PROCESSES

# (username, password, role)
SEED_USERS = [
    ("admin", "admin123", Role.ADMIN),
    ("manager", "manager123", Role.MANAGER),
    ("designer", "designer123", Role.EMPLOYEE),
    ("prepress", "prepress123", Role.PREPRESS),
    ("courier", "courier123", Role.COURIER),
]

SEED_CLIENTS = [
    ("Cedar Packaging", "orders@cedarpack.example.com", "Amman"),
    ("Blue Lagoon Foods", "print@bluelagoon.example.com", "Irbid"),
    ("Northwind Labels", "studio@northwind.example.com", "Zarqa"),
]

# How far along the pipeline each seeded order is pushed.
SEED_TARGETS = [
    OrderStatus.SUBMITTED,
    OrderStatus.DESIGNING,
    OrderStatus.DESIGN_DONE,
    OrderStatus.IN_PREPRESS,
    OrderStatus.READY_FOR_DELIVERY,
    OrderStatus.COMPLETED,
]


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        actors = self._seed_users()
        clients = self._seed_clients()
        orders_created = self._seed_orders(clients, actors)

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={len(actors)}, "
                f"clients={len(clients)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self) -> dict[str, Actor]:
        User = get_user_model()
        actors: dict[str, Actor] = {}
        for username, password, role in SEED_USERS:
            user = User.objects.filter(username=username).first()
            if user is None:
                if role == Role.ADMIN:
                    user = User.objects.create_superuser(username, password=password)
                else:
                    user = User.objects.create_user(username, password=password)
            group, _ = Group.objects.get_or_create(name=role.value)
            user.groups.add(group)
            actors[role.value] = Actor.from_user(user)
        Group.objects.get_or_create(name=Role.CLIENT.value)
        return actors

    def _seed_clients(self) -> list[Client]:
        self.stdout.write("Creating clients...")
        User = get_user_model()
        client_group = Group.objects.get(name=Role.CLIENT.value)
        clients: list[Client] = []
        for index, (name, email, city) in enumerate(SEED_CLIENTS, start=1):
            user = User.objects.filter(username=f"client{index}").first()
            if user is None:
                user = User.objects.create_user(
                    f"client{index}", email=email, password="client123"
                )
            user.groups.add(client_group)
            client, _ = Client.objects.get_or_create(
                email=email,
                defaults={
                    "name": name,
                    "company": name,
                    "user_ref": str(user.pk),
                    "address": {
                        "street": f"{10 * index} Industrial Street",
                        "city": city,
                        "country": "Jordan",
                    },
                },
            )
            clients.append(client)
        return clients

    def _seed_orders(self, clients: list[Client], actors: dict[str, Actor]) -> int:
        if Order.objects.exists():
            self.stdout.write("Orders already exist, skipping.")
            return 0

        self.stdout.write("Creating orders...")
        service = OrderService(
            order_repository=OrderDjangoRepository(),
            client_repository=ClientDjangoRepository(),
        )
        created = 0
        for index, target in enumerate(SEED_TARGETS):
            client = clients[index % len(clients)]
            order = service.create_order(
                CreateOrderDTO(
                    client_id=client.id,
                    title=f"Flexo plates batch #{index + 1}",
                    deadline=(timezone.now() + timedelta(days=random.randint(3, 21))).date(),
                    specifications={
                        "colors": random.randint(1, 6),
                        "material": random.choice(["Flint", "Strong", "Taiwan"]),
                        "materialThickness": random.choice([1.14, 1.7, 2.54]),
                        "dimensions": {"width": 320, "height": 480, "unit": "mm"},
                    },
                ),
                actors[Role.MANAGER],
            )
            self._advance(service, str(order.id), target, actors)
            created += 1
        return created

    def _advance(
        self,
        service: OrderService,
        order_id: str,
        target: str,
        actors: dict[str, Actor],
    ) -> None:
        designer = actors[Role.EMPLOYEE]
        manager = actors[Role.MANAGER]
        steps = SEED_TARGETS[1 : SEED_TARGETS.index(target) + 1]
        for status in steps:
            if status == OrderStatus.DESIGN_DONE:
                service.record_attachment(
                    order_id,
                    StageName.DESIGN,
                    "link",
                    f"https://files.example.com/designs/{order_id}.pdf",
                    designer,
                )
            if status == OrderStatus.READY_FOR_DELIVERY:
                for name in PREPRESS_SUB_PROCESSES:
                    service.complete_sub_process(
                        order_id, StageName.PREPRESS, name, actors[Role.PREPRESS]
                    )
                service.choose_delivery_mode(
                    order_id, ChooseDeliveryDTO(mode="direct"), manager
                )
            actor = manager if status == OrderStatus.COMPLETED else designer
            service.transition(order_id, status, actor)
