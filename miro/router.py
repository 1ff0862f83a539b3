VIEWS = ["Chat", "Journal", "Tips", "Community", "History"]
DEFAULT_VIEW = "Chat"

NAV_KEYS = {
    "Chat": "nav.chat",
    "Journal": "nav.journal",
    "Tips": "nav.tips",
    "Community": "nav.community",
    "History": "nav.history",
}


def resolve_view(view) -> str:
    """Unknown or missing selections land on the chat panel."""
    return view if view in VIEWS else DEFAULT_VIEW


def nav_labels(t):
    return {view: t(NAV_KEYS[view]) for view in VIEWS}
