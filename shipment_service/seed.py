"""
Load sample users and shipments.

    python -m shipment_service.seed

Accounts that already exist (by email) are left alone and their shipments
are not regenerated, so running it twice is harmless.
"""

import random
from datetime import timedelta
from shipment_service.application.schemas import RegisterRequest, ShipmentCreate
from shipment_service.application.shipment_service import ShipmentService
from shipment_service.application.user_service import UserService
from shipment_service.domain.models import User, UserRole, utcnow
from shipment_service.infrastructure.db import SessionLocal, init_models

SEED_PASSWORD = "password123"

USERS = [
    ("Admin User", "admin@example.com", UserRole.ADMIN),
    ("Manager User", "manager@example.com", UserRole.MANAGER),
    ("Regular User", "user@example.com", UserRole.USER),
    ("John Doe", "john@example.com", UserRole.USER),
]

ORIGINS = ["Lagos, Nigeria", "Abuja, Nigeria", "Port Harcourt, Nigeria", "Kano, Nigeria", "Ibadan, Nigeria"]
DESTINATIONS = ["London, UK", "New York, USA", "Dubai, UAE", "Johannesburg, South Africa", "Accra, Ghana"]

# Status path each sample shipment is walked through, always via the lifecycle engine
PATHS = {
    "pending": [],
    "in_transit": [("in_transit", "Package picked up and in transit")],
    "delivered": [
        ("in_transit", "Package picked up and in transit"),
        ("delivered", "Package delivered successfully"),
    ],
    "cancelled": [("cancelled", "Shipment cancelled by customer")],
}

def seed_user(users: UserService, name: str, email: str, role: UserRole) -> tuple[User, bool]:
    existing = users.db.query(User).filter(User.email == email).first()
    if existing:
        return existing, False
    user, _ = users.register(RegisterRequest(name=name, email=email, password=SEED_PASSWORD))
    if role != UserRole.USER:
        user = users.update_role(user.id, role)
    return user, True

def seed_shipments(shipments: ShipmentService, user: User, index: int, rng: random.Random) -> int:
    count = rng.randint(5, 10)
    for i in range(count):
        shipment = shipments.create(
            ShipmentCreate(
                sender_name=f"{user.name} (Sender)",
                receiver_name=f"Receiver {index + 1}-{i + 1}",
                origin=rng.choice(ORIGINS),
                destination=rng.choice(DESTINATIONS),
                weight=round(rng.uniform(0.5, 50.5), 1),
                description=f"Sample shipment {i + 1} for {user.name}",
                estimated_delivery=utcnow() + timedelta(days=rng.randint(3, 16)),
            ),
            user,
        )
        for status, notes in PATHS[rng.choice(list(PATHS))]:
            shipments.change_status(shipment.id, status, user, notes)
    return count

def main(rng: random.Random = None):
    rng = rng or random.Random()
    init_models()
    db = SessionLocal()
    try:
        users = UserService(db)
        shipments = ShipmentService(db)
        for index, (name, email, role) in enumerate(USERS):
            user, created = seed_user(users, name, email, role)
            if not created:
                print(f"User {email} already exists; skipping")
                continue
            count = seed_shipments(shipments, user, index, rng)
            print(f"Created {role.value} {email} with {count} shipments")
    finally:
        db.close()

    print(f"\nAll seeded accounts use the password '{SEED_PASSWORD}'")

if __name__ == "__main__":
    main()
