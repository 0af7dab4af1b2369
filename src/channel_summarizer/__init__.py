"""Channel Summarizer - a Telegram bot that groups and summarizes forwarded channel messages."""

from importlib.metadata import PackageNotFoundError, metadata, version

DISTRIBUTION_NAME = "channel-summarizer"

try:
    __version__ = version(DISTRIBUTION_NAME)
except PackageNotFoundError:
    __version__ = "0.0.0"


def project_urls() -> dict[str, str]:
    """Repository/homepage URLs and license from the installed distribution metadata."""
    try:
        meta = metadata(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        return {}

    urls: dict[str, str] = {}
    for entry in meta.get_all("Project-URL") or []:
        label, _, url = entry.partition(",")
        urls[label.strip().lower()] = url.strip()
    license_name = meta.get("License-Expression") or meta.get("License")
    if license_name:
        urls["license"] = license_name
    return urls


__all__ = ["__version__", "project_urls"]
