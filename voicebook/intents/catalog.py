"""
voicebook/intents/catalog.py

Intent names understood by VoiceBook.

GLOBAL_INTENTS are routed by the command dispatcher itself; SCREEN_INTENTS
are left pending for whichever screen is mounted.

@module intents/catalog
"""

UNRECOGNIZED = "unknown"

# Aliases some model responses use for the unrecognized sentinel.
UNRECOGNIZED_ALIASES = frozenset({"unknown", "intent_unknown", ""})


# =============================================================================
# GLOBAL INTENTS
# =============================================================================

INTENT_OPEN_FEED = "intent_open_feed"
INTENT_OPEN_EXPLORE = "intent_open_explore"
INTENT_OPEN_REELS = "intent_open_reels"
INTENT_OPEN_FRIENDS_PAGE = "intent_open_friends_page"
INTENT_OPEN_MESSAGES = "intent_open_messages"
INTENT_OPEN_ROOMS_HUB = "intent_open_rooms_hub"
INTENT_OPEN_GROUPS_HUB = "intent_open_groups_hub"
INTENT_OPEN_ADS_CENTER = "intent_open_ads_center"
INTENT_OPEN_SETTINGS = "intent_open_settings"
INTENT_OPEN_MENU = "intent_open_menu"
INTENT_OPEN_MY_PROFILE = "intent_open_my_profile"
INTENT_OPEN_PROFILE = "intent_open_profile"
INTENT_GO_BACK = "intent_go_back"
INTENT_RELOAD_PAGE = "intent_reload_page"
INTENT_SCROLL_DOWN = "intent_scroll_down"
INTENT_SCROLL_UP = "intent_scroll_up"
INTENT_PLAY_POST = "intent_play_post"
INTENT_PAUSE_POST = "intent_pause_post"
INTENT_CREATE_POST = "intent_create_post"
INTENT_CREATE_TEXT_POST = "intent_create_text_post"
INTENT_CREATE_VOICE_POST = "intent_create_voice_post"
INTENT_CREATE_PHOTO_POST = "intent_create_photo_post"
INTENT_CREATE_VIDEO_POST = "intent_create_video_post"
INTENT_CREATE_STORY = "intent_create_story"
INTENT_CREATE_STORY_WITH_TEXT = "intent_create_story_with_text"
INTENT_SEARCH_USER = "intent_search_user"

GLOBAL_INTENTS = (
    INTENT_OPEN_FEED,
    INTENT_OPEN_EXPLORE,
    INTENT_OPEN_REELS,
    INTENT_OPEN_FRIENDS_PAGE,
    INTENT_OPEN_MESSAGES,
    INTENT_OPEN_ROOMS_HUB,
    INTENT_OPEN_GROUPS_HUB,
    INTENT_OPEN_ADS_CENTER,
    INTENT_OPEN_SETTINGS,
    INTENT_OPEN_MENU,
    INTENT_OPEN_MY_PROFILE,
    INTENT_OPEN_PROFILE,
    INTENT_GO_BACK,
    INTENT_RELOAD_PAGE,
    INTENT_SCROLL_DOWN,
    INTENT_SCROLL_UP,
    INTENT_PLAY_POST,
    INTENT_PAUSE_POST,
    INTENT_CREATE_POST,
    INTENT_CREATE_TEXT_POST,
    INTENT_CREATE_VOICE_POST,
    INTENT_CREATE_PHOTO_POST,
    INTENT_CREATE_VIDEO_POST,
    INTENT_CREATE_STORY,
    INTENT_CREATE_STORY_WITH_TEXT,
    INTENT_SEARCH_USER,
)


# =============================================================================
# SCREEN INTENTS
# =============================================================================

SCREEN_INTENTS = (
    "intent_next_post",
    "intent_previous_post",
    "intent_next_image",
    "intent_previous_image",
    "intent_open_post_viewer",
    "intent_stop_scroll",
    "intent_react_to_post",
    "intent_comment",
    "intent_add_comment_text",
    "intent_post_comment",
    "intent_share",
    "intent_save_post",
    "intent_hide_post",
    "intent_copy_link",
    "intent_report_post",
    "intent_add_friend",
    "intent_unfriend_user",
    "intent_cancel_friend_request",
    "intent_accept_request",
    "intent_decline_request",
    "intent_open_chat",
    "intent_send_chat_message",
    "intent_select_result",
    "intent_post_confirm",
    "intent_stop_recording",
    "intent_re_record",
    "intent_view_group_by_name",
    "intent_search_group",
    "intent_help",
)

# Slots each intent may carry.
INTENT_SLOTS: dict[str, tuple[str, ...]] = {
    INTENT_OPEN_PROFILE: ("target_name",),
    INTENT_SEARCH_USER: ("target_name",),
    INTENT_CREATE_TEXT_POST: ("caption",),
    INTENT_CREATE_STORY_WITH_TEXT: ("text_content",),
    "intent_react_to_post": ("reaction_type",),
    "intent_add_comment_text": ("comment_text",),
    "intent_add_friend": ("target_name",),
    "intent_unfriend_user": ("target_name",),
    "intent_cancel_friend_request": ("target_name",),
    "intent_accept_request": ("target_name",),
    "intent_decline_request": ("target_name",),
    "intent_open_chat": ("target_name",),
    "intent_send_chat_message": ("message_content",),
    "intent_select_result": ("index",),
    "intent_view_group_by_name": ("group_name",),
    "intent_search_group": ("search_query",),
}


def is_unrecognized(name: str | None) -> bool:
    return (name or "").strip().lower() in UNRECOGNIZED_ALIASES
