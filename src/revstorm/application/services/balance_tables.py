from __future__ import annotations

from revstorm.domain.models.game_state import BackgroundType


VITAL_MIN = 0
VITAL_MAX = 100

FATE_POINT_SOFT_CAP = 5
FATE_POINT_CHEAT_PIN = 99
STARTING_FATE_POINTS = 3

POWER_GRANT_CEILING = 1
POWER_GRANT_COOLDOWN_MONTHS = 3
SUPREME_LEADER_STARTING_POWER = 3
MANIPULATION_POWER_COST = 1

THRESHOLD_MIN = 5
THRESHOLD_MAX = 95
CRITICAL_FLOOR_MIN = 20
CRITICAL_FAILURE_MAX_DRAW = 5
ATTRIBUTE_THRESHOLD_WEIGHT = 2
REROLL_THRESHOLD_STEP = 5
DEFAULT_DIFFICULTY = 50
HIGH_SUCCESS_STAR_DRAW = 85

PITY_TURN_THRESHOLD = 10

MODIFIER_BOUND = 20
CRIME_SUM_THRESHOLD = -15

ROSTER_SHARE_TOTAL = 100.0
ROSTER_SHARE_TOLERANCE = 1.0

TESTAMENT_HEALTH_THRESHOLD = 20
RECENT_HISTORY_WINDOW = 3
SUCCESSOR_AGE = 40

DEFAULT_START_YEAR = 1966
DEFAULT_START_MONTH = 5
DEFAULT_SUPREME_LEADER = "Mao Zedong"
DEFAULT_SLOGAN = "Sailing the seas depends on the helmsman"
DEFAULT_SYMBOL = "☭"
UNKNOWN_SUPREME_LEADER = "Unknown"

SPECIAL_MANIPULATE_CHOICE_ID = "special_manipulate_scales"
ACTION_MANIPULATE_CHOICE_ID = "action_manipulate_scales"
MANIPULATION_CHOICE_IDS = frozenset({SPECIAL_MANIPULATE_CHOICE_ID, ACTION_MANIPULATE_CHOICE_ID})
WRITE_TESTAMENT_CHOICE_ID = "action_write_testament"
PITY_CHOICE_ID = "pity_free_action"

SUPREME_LEADER_TRAIT_NAME = "Supreme Leader"
SUPREME_LEADER_TRAIT_DESCRIPTION = "All under heaven answers to you. You hold the highest power in the land."
SUPREME_LEADER_TRAIT_MODIFIERS = {"politics": 10, "charisma": 10, "spirit": 5}

GAME_OVER_HEALTH = "Your body gave out and you died on the long road of the revolution."
GAME_OVER_POLITICAL = "You were struck down, branded a counter-revolutionary and sent to a labour farm for the rest of your days."
GAME_OVER_MENTAL = "The pressure was more than any mind could bear. You went mad."

RECOVERED_HISTORY_TEXT = "History data recovered."


STARTING_STATS: dict[BackgroundType, dict[str, object]] = {
    BackgroundType.RED_FIVE: {
        "political_standing": 85,
        "health": 90,
        "mental": 80,
        "current_faction": "Loyalists",
        "inventory": ["Little Red Book", "Army canteen"],
    },
    BackgroundType.BLACK_FIVE: {
        "political_standing": 20,
        "health": 80,
        "mental": 60,
        "current_faction": "None",
        "inventory": ["Hidden family letter"],
    },
    BackgroundType.INTELLECTUAL: {
        "political_standing": 50,
        "health": 70,
        "mental": 75,
        "current_faction": "Wanderers",
        "inventory": ["Fountain pen", "Spectacles"],
    },
    BackgroundType.ORDINARY: {
        "political_standing": 60,
        "health": 85,
        "mental": 70,
        "current_faction": "Wanderers",
        "inventory": ["Grain coupons"],
    },
    BackgroundType.HISTORICAL: {
        "political_standing": 50,
        "health": 80,
        "mental": 80,
        "current_faction": "Unknown",
        "inventory": ["Historical dossier"],
    },
    BackgroundType.TIME_TRAVELER: {
        "political_standing": 40,
        "health": 80,
        "mental": 70,
        "current_faction": "None",
        "inventory": ["Out-of-place wristwatch"],
    },
}


def starting_stats_for(background: BackgroundType) -> dict[str, object]:
    row = STARTING_STATS.get(background) or STARTING_STATS[BackgroundType.ORDINARY]
    return {**row, "inventory": list(row["inventory"])}
