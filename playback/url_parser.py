from ada_url import check_url


def is_absolute_url(text: str) -> bool:
    """Return True if ``text`` parses as an absolute WHATWG URL.

    Anything with a well-formed scheme counts, so ``"artist:song"`` and even
    ``"artist:"`` are URLs here even if the user meant them as a search.
    """
    text = text.strip()
    if not text:
        return False
    return check_url(text)
