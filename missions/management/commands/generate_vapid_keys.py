# missions/management/commands/generate_vapid_keys.py
import base64

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from django.core.management.base import BaseCommand


def urlsafe_b64encode_nopad(data):
    """VAPID keys are URL-safe base64 without padding"""
    return base64.urlsafe_b64encode(data).rstrip(b'=').decode('utf-8')


def generate_vapid_key_pair():
    """New P-256 key pair for web push, as (public_key, private_key) strings."""
    private_key = ec.generate_private_key(ec.SECP256R1())
    public_bytes = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.UncompressedPoint
    )
    private_bytes = private_key.private_numbers().private_value.to_bytes(32, byteorder="big")
    return urlsafe_b64encode_nopad(public_bytes), urlsafe_b64encode_nopad(private_bytes)


class Command(BaseCommand):
    help = "Generate the VAPID key pair used to push mission notifications."

    def handle(self, *args, **options):
        public_key, private_key = generate_vapid_key_pair()
        self.stdout.write(f"VAPID_PUBLIC_KEY={public_key}")
        self.stdout.write(f"VAPID_PRIVATE_KEY={private_key}")
        self.stdout.write(self.style.SUCCESS("Copy these keys into your .env file."))
