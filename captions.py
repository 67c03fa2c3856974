"""Captions offered when sharing a verdict."""

REDDIT_CAPTIONS = [
    'AITA for agreeing with this verdict?',
    "I don't know how to feel about this.",
    'Medium-rare or well done?',
    'AITA for testing it on my friend?',
    "I'm definitely on a watchlist now.",
    "I've made peace with my choices.",
]

DEFAULT_CAPTION = REDDIT_CAPTIONS[0]
MAX_CUSTOM_CAPTION = 300


class CaptionError(ValueError):
    pass


def final_caption(selected=None, custom=None):
    """A non-blank custom caption wins over the selected preset."""
    for value in (selected, custom):
        if value is not None and not isinstance(value, str):
            raise CaptionError(f'Caption must be text, got {type(value).__name__}')
    custom = (custom or '').strip()
    if len(custom) > MAX_CUSTOM_CAPTION:
        raise CaptionError(f'Custom caption is limited to {MAX_CUSTOM_CAPTION} characters')
    if custom:
        return custom

    selected = selected or DEFAULT_CAPTION
    if selected not in REDDIT_CAPTIONS:
        raise CaptionError(f'Unknown caption: {selected!r}')
    return selected
