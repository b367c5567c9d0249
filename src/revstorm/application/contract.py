CONTRACT_VERSION = "1.0.0"

COMMAND_INTENTS = (
    "start_game",
    "submit_action",
    "consume_one_fate_point",
    "submit_turn",
    "retry_turn",
    "confirm_successor",
    "load_save",
)

QUERY_INTENTS = (
    "current_view",
    "theme_color",
    "export_save",
)

CONTRACT_DTO_TYPES = (
    "TurnView",
    "CheckView",
    "ChoiceView",
    "TraitView",
    "FactionView",
    "HistoryEntryView",
    "SuccessorView",
)
