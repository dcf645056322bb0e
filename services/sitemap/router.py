"""
services/sitemap/router.py
sitemap.xml built from the static pages plus every active cabin.
"""

import logging
from datetime import datetime, timezone
from typing import Optional
from xml.sax.saxutils import escape

from fastapi import Depends, Response
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from config.settings import settings
from shared.middleware.functions import function_router
from shared.models.models import Cabin, CabinStatus

logger = logging.getLogger(__name__)

router = function_router(tags=["SEO"])

XML_MEDIA_TYPE = "application/xml; charset=utf-8"

# (path, priority, changefreq)
STATIC_PAGES = [
    ("", "1.0", "daily"),
    ("/kontakt", "0.5", "monthly"),
    ("/faq", "0.5", "monthly"),
    ("/dla-wystawcow", "0.6", "weekly"),
    ("/polityka-prywatnosci", "0.3", "yearly"),
    ("/regulamin", "0.3", "yearly"),
]


def _url_entry(loc: str, lastmod: str, changefreq: Optional[str], priority: str) -> str:
    lines = [
        "  <url>",
        f"    <loc>{escape(loc)}</loc>",
        f"    <lastmod>{lastmod}</lastmod>",
    ]
    if changefreq:
        lines.append(f"    <changefreq>{changefreq}</changefreq>")
    lines.append(f"    <priority>{priority}</priority>")
    lines.append("  </url>")
    return "\n".join(lines) + "\n"


def build_sitemap(base_url: str, cabins: list[tuple[str, Optional[datetime]]], today: str) -> str:
    """cabins: (slug, updated_at) pairs, already ordered."""
    xml = '<?xml version="1.0" encoding="UTF-8"?>\n'
    xml += '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">\n'

    for path, priority, changefreq in STATIC_PAGES:
        xml += _url_entry(f"{base_url}{path}", today, changefreq, priority)

    for slug, updated_at in cabins:
        lastmod = updated_at.date().isoformat() if updated_at else today
        xml += _url_entry(f"{base_url}/cabin/{slug}", lastmod, "weekly", "0.8")

    xml += "</urlset>"
    return xml


def fallback_sitemap(base_url: str, today: str) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">\n'
        + _url_entry(base_url, today, None, "1.0")
        + "</urlset>"
    )


@router.get("/generate-sitemap")
async def generate_sitemap(db: AsyncSession = Depends(get_db)):
    base_url = settings.PUBLIC_BASE_URL.rstrip("/")
    today = datetime.now(timezone.utc).date().isoformat()

    try:
        result = await db.execute(
            select(Cabin.slug, Cabin.updated_at)
            .where(Cabin.status == CabinStatus.ACTIVE)
            .order_by(Cabin.updated_at.desc())
        )
        cabins = [(row.slug, row.updated_at) for row in result.all()]
    except SQLAlchemyError:
        logger.exception("Sitemap generation error")
        return Response(content=fallback_sitemap(base_url, today), media_type=XML_MEDIA_TYPE)

    logger.info(
        f"Generated sitemap with {len(STATIC_PAGES)} static pages and {len(cabins)} cabins"
    )
    return Response(content=build_sitemap(base_url, cabins, today), media_type=XML_MEDIA_TYPE)
