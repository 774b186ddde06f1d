"""Open Graph / Twitter card metadata for shared poll links."""
from typing import Dict, Optional

from core.settings import settings


def poll_preview(
    poll_uuid: str,
    title: str,
    description: Optional[str],
    option_count: int,
    vote_count: int,
    base_url: Optional[str] = None,
) -> Dict[str, str]:
    base_url = (base_url or settings.APP_BASE_URL).rstrip("/")

    if not description:
        description = f'Vote on "{title}" - {option_count} options available'
        if vote_count > 0:
            description += f" ({vote_count} votes so far)"

    return {
        "title": f"{title} - {settings.SITE_NAME}",
        "description": description,
        "url": f"{base_url}/polls/{poll_uuid}",
        "image_url": f"{base_url}/api/og/poll/{poll_uuid}",
        "site_name": settings.SITE_NAME,
    }


def open_graph_tags(preview: Dict[str, str]) -> Dict[str, str]:
    return {
        "og:type": "article",
        "og:title": preview["title"],
        "og:description": preview["description"],
        "og:url": preview["url"],
        "og:site_name": preview.get("site_name") or settings.SITE_NAME,
        "og:image": preview["image_url"],
        "og:image:width": "1200",
        "og:image:height": "630",
        "og:image:alt": preview["title"],
    }


def twitter_card_tags(preview: Dict[str, str]) -> Dict[str, str]:
    return {
        "twitter:card": "summary_large_image",
        "twitter:title": preview["title"],
        "twitter:description": preview["description"],
        "twitter:image": preview["image_url"],
    }
