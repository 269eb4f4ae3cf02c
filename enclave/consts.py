"""Game constants for Enclave characters and classes."""

STAT_LIST = [
    "vitality",
    "might",
    "resilience",
    "spirit",
    "arcane",
    "will",
    "sensory",
    "reflex",
    "vigor",
    "skill",
    "intelligence",
    "luck",
]

# Each stat has a matching personality trait.
PERSONALITY_MAP = {
    "vitality": "indulgent",
    "might": "forceful",
    "resilience": "tough",
    "spirit": "compassionate",
    "arcane": "ambitious",
    "will": "self-controlled",
    "sensory": "alert",
    "reflex": "smooth",
    "vigor": "enthusiastic",
    "skill": "confident",
    "intelligence": "opinionated",
    "luck": "carefree",
}

PERSONALITY_TRAITS = list(PERSONALITY_MAP.values())

CLASS_GEAR = {
    "Gunslinger": [
        "Duster",
        "Bandolier",
        "Revolver",
        "Sharps Rifle",
        "Coach Gun",
        "Saddled Horse",
    ],
    "Illusionist": [
        "Wizarding Hat",
        "Smokebombs",
        "Folding Fan",
        "Billowing Cape",
        "Tome",
        "Handmirror",
    ],
    "Librarian": [
        "Scholarly Raiment",
        "Reading Glasses",
        "Bookbag",
        "Quill Pen",
        "Scanner",
        "Memos",
    ],
    "Thane": [
        "Heavy Panoply",
        "Mantle",
        "Bastard Sword",
        "Halfpike & Kiteshield",
        "Banner",
        "Barded Warhorse",
    ],
    "Thunderbird": [
        "Feathered Cloak",
        "Talaria",
        "Thunderhammer",
        "Heroic Cuirass",
        "Lightning Bolts",
        "Ceremonial Drum",
    ],
    "Wanderer": [
        "Satchel",
        "Walking Stick",
        "Waypoints",
        "Fiddle",
        "Nostrum",
        "Map",
    ],
}

ADVENT_CLASSES = [
    "Gunslinger",
    "Illusionist",
    "Librarian",
    "Thane",
    "Thunderbird",
    "Wanderer",
]

ASPIRANT_PREVIEW_CLASSES = [
    "Berserker",
    "Infiltrator",
    "Vessel",
]

PLAYER_CREATED_CLASSES = [
    "Battery",
    "Bogatyr",
    "Inventor",
    "Jinx",
    "Lithomancer",
    "Ratcatcher",
    "Shōnen",
]

ALL_CLASSES = ADVENT_CLASSES + ASPIRANT_PREVIEW_CLASSES + PLAYER_CREATED_CLASSES

ALL_GEAR = [item for gear in CLASS_GEAR.values() for item in gear]
