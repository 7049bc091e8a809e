"""
Cover page rendering through a headless Chromium.

The cover is the only page that goes through a browser engine: it is laid out
with HTML/CSS and printed to a one-page PDF. Content pages are produced by
``assembler`` without a browser, so the engine is launched once per job.
"""

from __future__ import annotations

import html
import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from .exceptions import RenderError

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Image Report"
DEFAULT_DESCRIPTION = "This report was optimized to reduce storage consumption."

COVER_TEMPLATE = """<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8"/>
    <style>
      body {{ font-family: sans-serif; padding: 20px; background: white; }}
      h1 {{ color: #333; }}
      dl {{ display: grid; grid-template-columns: max-content auto; gap: 6px 16px; }}
      dt {{ font-weight: bold; color: #555; }}
      .description {{ margin-top: 32px; color: #666; }}
    </style>
  </head>
  <body>
    <h1>{title}</h1>
    <dl>
      <dt>Generated at</dt><dd>{generated_at}</dd>
      <dt>Images</dt><dd>{image_count}</dd>
      <dt>Request ID</dt><dd>{job_id}</dd>
    </dl>
    <p class="description">{description}</p>
  </body>
</html>
"""


def build_cover_html(
    job_id: str,
    image_count: int,
    generated_at: Optional[datetime] = None,
    title: str = DEFAULT_TITLE,
    description: str = DEFAULT_DESCRIPTION,
) -> str:
    generated_at = generated_at or datetime.now(timezone.utc)
    return COVER_TEMPLATE.format(
        title=html.escape(title),
        generated_at=html.escape(generated_at.isoformat()),
        image_count=int(image_count),
        job_id=html.escape(job_id),
        description=html.escape(description),
    )


class CoverRenderer:
    """Renders the cover page; every call launches and closes its own browser."""

    def __init__(
        self,
        title: str = DEFAULT_TITLE,
        description: str = DEFAULT_DESCRIPTION,
        page_format: str = "A4",
        margin: str = "20px",
        headless: bool = True,
        launch_args: Sequence[str] = ("--no-sandbox", "--disable-setuid-sandbox"),
    ) -> None:
        self.title = title
        self.description = description
        self.page_format = page_format
        self.margin = margin
        self.headless = headless
        self.launch_args = list(launch_args)

    async def render(self, job_id: str, image_count: int) -> bytes:
        """
        Produce the one-page cover PDF.

        Raises:
            RenderError: if the browser fails to launch or print
        """
        content = build_cover_html(job_id, image_count, title=self.title, description=self.description)
        try:
            async with async_playwright() as playwright:
                browser = await playwright.chromium.launch(headless=self.headless, args=self.launch_args)
                try:
                    page = await browser.new_page()
                    await page.set_content(content, wait_until="networkidle")
                    pdf = await page.pdf(
                        format=self.page_format,
                        print_background=True,
                        margin={side: self.margin for side in ("top", "bottom", "left", "right")},
                    )
                finally:
                    await browser.close()
        except PlaywrightError as exc:
            logger.error(f"Cover rendering failed for job {job_id}: {exc}")
            raise RenderError(f"Cover rendering failed: {exc}") from exc

        logger.info(f"Rendered cover for job {job_id} ({len(pdf)} bytes)")
        return pdf
