import logging

logger = logging.getLogger("ollamaproxy")


def configure_logging(settings) -> None:
    if settings.DEBUG:
        level = logging.DEBUG
    else:
        level = getattr(logging, str(settings.LOG_LEVEL).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logger.setLevel(level)
    # httpx logs every request at INFO; our own upstream lines already cover it
    noisy = logging.DEBUG if settings.DEBUG else logging.WARNING
    logging.getLogger("httpx").setLevel(noisy)
    logging.getLogger("httpcore").setLevel(noisy)


def preview(text: str | None, max_len: int = 160) -> str:
    text = (text or "").replace("\n", "\\n")
    return text if len(text) <= max_len else text[:max_len] + "..."
