from collections.abc import Sequence

# Lead-in phrases vision models like to start with. Checked in this order, the first match wins.
DEFAULT_BOILERPLATE_PREFIXES: tuple[str, ...] = (
    "The image features",
    "The image depicts",
    "The image shows",
    "This image depicts",
    "This image shows",
    "This image features",
    "The image appears to be ",
    "This image appears to be ",
    "The photo shows",
    "This photo shows",
    "The photo depicts",
    "This photo depicts",
    "In this image",
    "In the image",
    "I can see",
)


def strip_boilerplate_prefix(caption: str, prefixes: Sequence[str] = DEFAULT_BOILERPLATE_PREFIXES) -> str:
    """
    Removes the first matching prefix (case-insensitive). At most one prefix is removed, together with
    the commas and periods that separate it from the rest of the caption.
    """
    for prefix in prefixes:
        if not prefix:
            continue
        if caption[:len(prefix)].lower() == prefix.lower():
            return caption[len(prefix):].lstrip(" ,.").strip()
    return caption


def periods_to_commas(caption: str) -> str:
    """
    Turns sentences into a single comma separated phrase list.

    Every segment between periods is trimmed, all but the last get a trailing comma and the segments
    are joined with single spaces. Trailing periods do not leave an empty last segment, so
    "A cat. A dog." becomes "A cat, A dog".
    """
    segments = caption.split(".")
    while len(segments) > 1 and not segments[-1].strip():
        segments.pop()

    last = len(segments) - 1
    return " ".join(
        segment.strip() if i == last else segment.strip() + ","
        for i, segment in enumerate(segments)
    )


def normalize_caption(raw: str, prefixes: Sequence[str] = DEFAULT_BOILERPLATE_PREFIXES) -> str:
    """
    Cleans raw model output into a dataset caption.

    Parameters:
        raw (`str`): the text returned by the model, or typed by the user
        prefixes (`Sequence[str]`): boilerplate lead-ins to strip, in priority order

    Returns: the normalized caption, possibly empty
    """
    caption = raw.strip()
    caption = strip_boilerplate_prefix(caption, prefixes)
    caption = periods_to_commas(caption)
    return caption.strip()
