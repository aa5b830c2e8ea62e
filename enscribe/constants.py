APP_NAME = "Enscribe"

SCHEMA_VERSION = 9

# Backup documents without a "version" field are treated as version 1.
BACKUP_VERSION = 2
LEGACY_BACKUP_VERSION = 1

DEFAULT_THEME = "Onyx"

THEMES = {
    "Onyx": "Deep black for high contrast and OLED.",
    "Midnight": "Dark theme with cool blue tones.",
    "Burgundy": "Rich dark theme with deep reds.",
    "Graphene": "Soft, modern graphite tones.",
    "Lumen": "Bright, clean light theme.",
    "Beige": "Warm and cozy light hues.",
    "Amethyst": "Dark theme with subtle purple.",
    "Lavender": "Airy light with purple accents.",
    "Aqua": "Refreshing light water-inspired.",
    "Mint": "Crisp, cool light theme.",
}

PREVIEW_LIMIT = 96
