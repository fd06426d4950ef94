import logging

from config import DEFAULT_DB_PATH
from db import MovementRepository, TemplateRepository, VariantRepository
from models import ResistanceType

logger = logging.getLogger(__name__)

CATALOG = [
    (
        "Bench Press",
        "Chest",
        3,
        [
            ("Barbell", ResistanceType.TOTAL),
            ("Dumbbell", ResistanceType.PER_UNIT),
            ("Smith Machine", ResistanceType.TOTAL),
        ],
    ),
    (
        "Shoulder Press",
        "Shoulders",
        3,
        [("Dumbbell", ResistanceType.PER_UNIT), ("Machine", ResistanceType.STACK)],
    ),
    (
        "Lateral Raise",
        "Shoulders",
        3,
        [("Dumbbell", ResistanceType.PER_UNIT), ("Cable", ResistanceType.STACK)],
    ),
    (
        "Triceps Pushdown",
        "Arms",
        3,
        [("Rope", ResistanceType.STACK), ("Straight Bar", ResistanceType.STACK)],
    ),
    (
        "Squat",
        "Legs",
        4,
        [("Barbell", ResistanceType.TOTAL), ("Hack Squat", ResistanceType.TOTAL)],
    ),
    (
        "Lat Pulldown",
        "Back",
        3,
        [
            ("Wide Grip", ResistanceType.STACK),
            ("Close Grip", ResistanceType.STACK),
            ("Assisted Pull-up", ResistanceType.ASSISTED),
        ],
    ),
]

TEMPLATES = {
    "PUSH": [
        ("Bench Press", 1),
        ("Shoulder Press", 1),
        ("Lateral Raise", 1),
        ("Triceps Pushdown", 1),
    ],
    "PULL": [("Lat Pulldown", 2)],
    "LEGS": [("Squat", 1)],
}


def seed(db_path: str = DEFAULT_DB_PATH) -> bool:
    """Insert the default catalog. Returns False when movements already exist."""
    movements = MovementRepository(db_path)
    if movements.fetch_all_movements():
        logger.info("catalog already present in %s", db_path)
        return False
    variants = VariantRepository(db_path)
    templates = TemplateRepository(db_path)
    ids: dict[str, int] = {}
    for name, category, set_count, options in CATALOG:
        mid = movements.add(name, category, set_count)
        ids[name] = mid
        for variant_name, resistance in options:
            variants.add(mid, variant_name, resistance, unit="kg")
    for template_name, items in TEMPLATES.items():
        tid = templates.create(template_name)
        for movement_name, quantity in items:
            templates.add_item(tid, ids[movement_name], quantity=quantity)
    logger.info("seeded %d movements and %d templates", len(ids), len(TEMPLATES))
    return True


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    if seed():
        print("Seed data inserted")
    else:
        print("Database already contains movements")
