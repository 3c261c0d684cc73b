# store/management/commands/seed_store.py — smartwatches de exemplo + usuário admin
import os
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from store.models import Feature, Product

SAMPLE_PRODUCTS = [
    {
        "name": "Galaxy Watch 5 Pro",
        "brand": "Samsung",
        "description": "The ultimate smartwatch for outdoor adventurers.",
        "price": Decimal("399.99"),
        "image_url": "https://example.com/images/galaxy-watch-5-pro.jpg",
        "stock": 10,
        "critical_stock": 2,
        "features": ["GPS", "Bateria de longa duração", "Monitoramento de atividades", "Resistência à água"],
    },
    {
        "name": "Apple Watch Series 8",
        "brand": "Apple",
        "description": "A grande tela Retina Sempre Ativa.",
        "price": Decimal("429.00"),
        "image_url": "https://example.com/images/apple-watch-series-8.jpg",
        "stock": 8,
        "critical_stock": 2,
        "features": ["Detecção de Colisão", "Sensor de temperatura", "ECG", "Monitoramento de atividades"],
    },
    {
        "name": "Forerunner 955 Solar",
        "brand": "Garmin",
        "description": "Smartwatch de corrida com GPS e carregamento solar.",
        "price": Decimal("599.99"),
        "image_url": "https://example.com/images/forerunner-955-solar.jpg",
        "stock": 5,
        "critical_stock": 1,
        "features": ["Carregamento Solar", "GPS Multibanda", "Métricas de desempenho avançadas"],
    },
]


class Command(BaseCommand):
    help = "Cria smartwatches de exemplo (idempotente por nome) e o admin de ADMIN_EMAIL/ADMIN_PASSWORD."

    @transaction.atomic
    def handle(self, *args, **options):
        created = 0
        for sample in SAMPLE_PRODUCTS:
            data = dict(sample)
            features = data.pop("features")
            product, was_created = Product.objects.get_or_create(
                name=data.pop("name"), defaults={**data, "is_published": True}
            )
            if was_created:
                Feature.objects.bulk_create([Feature(product=product, name=n) for n in features])
                created += 1
        self.stdout.write(self.style.SUCCESS(f"{created} smartwatch(es) criados."))

        email = os.getenv("ADMIN_EMAIL", "").strip().lower()
        password = os.getenv("ADMIN_PASSWORD", "")
        if not (email and password):
            self.stdout.write("ADMIN_EMAIL/ADMIN_PASSWORD ausentes: admin não criado.")
            return

        User = get_user_model()
        user, _ = User.objects.get_or_create(username=email, defaults={"email": email})
        user.email = email
        user.is_staff = True
        user.is_superuser = True
        user.set_password(password)
        user.save()
        self.stdout.write(self.style.SUCCESS(f"Admin {email} pronto."))
