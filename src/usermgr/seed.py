"""Demonstration accounts and files for a fresh installation."""

import logging

from .models.user import Role
from .schemas import FileCreate, UserCreate, UserFilters
from .store import Store

logger = logging.getLogger(__name__)

DEMO_ADMIN = {
    "nom": "Blami",
    "prenoms": "Angenor",
    "email": "angenor@email.com",
    "password": "admin123",
    "role": Role.ADMIN,
}

DEMO_USERS = [
    {"nom": "Dubois", "prenoms": "Marie", "email": "marie.dubois@email.com", "role": Role.USER},
    {"nom": "Martin", "prenoms": "Jean", "email": "jean.martin@email.com", "role": Role.USER},
    {"nom": "Dupont", "prenoms": "Pierre", "email": "pierre.dupont@email.com", "role": Role.ADMIN},
]
DEMO_USER_PASSWORD = "password123"

DEMO_FILES = [
    {
        "nom": "Rapport_annuel_2024.pdf",
        "description": "Rapport financier complet",
        "type": "application/pdf",
        "taille": 3355443,
    },
    {
        "nom": "Budget_2024.xlsx",
        "description": "Prévisions budgétaires",
        "type": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "taille": 1887436,
    },
    {
        "nom": "Guide_utilisateur.docx",
        "description": "Manuel d'utilisation",
        "type": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "taille": 1258291,
    },
    {
        "nom": "Presentation_projet.pptx",
        "description": "Présentation du nouveau projet",
        "type": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
        "taille": 5242880,
    },
]


def seed_demo_data(store: Store) -> bool:
    """Populate an empty store; returns whether anything was created."""
    _, total = store.list_users(UserFilters())
    if total:
        logger.info("store already holds %s users, skipping demo data", total)
        return False

    admin = store.create_user(UserCreate(**DEMO_ADMIN))
    store.touch_last_login(admin.id)
    for fields in DEMO_USERS:
        store.create_user(UserCreate(password=DEMO_USER_PASSWORD, **fields))
    for fields in DEMO_FILES:
        store.create_file(FileCreate(**fields), creator_id=admin.id)

    logger.info("seeded %s users and %s files", len(DEMO_USERS) + 1, len(DEMO_FILES))
    return True
