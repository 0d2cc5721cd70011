"""Public redirect endpoint with background click tracking."""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import RedirectResponse

from app.api.dependencies import get_click_tracker, get_client_ip, get_link_resolver
from app.core.url_logger import log_url_access
from app.db.session import get_db
from app.services.exceptions import ShortLinkNotFoundError, StoreUnavailableError
from app.services.resolver import LinkResolver
from app.services.tracker import ClickTracker, ClickVisit

router = APIRouter(tags=["redirect"])

NOT_FOUND_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>Link not found</title>
</head>
<body>
  <h1>404</h1>
  <p>This short link does not exist or has been deleted.</p>
</body>
</html>
"""


@router.get(
    "/{short_code}",
    response_class=RedirectResponse,
    status_code=status.HTTP_302_FOUND,
    responses={404: {"description": "Short link not found", "content": {"text/html": {}}}},
)
async def redirect_to_original_url(
    request: Request,
    short_code: str,
    db: AsyncSession = Depends(get_db),
    resolver: LinkResolver = Depends(get_link_resolver),
    tracker: ClickTracker = Depends(get_click_tracker),
):
    """Redirect to the original URL and hand the visit to the click tracker."""
    try:
        resolution = await resolver.resolve(db, short_code)
    except ShortLinkNotFoundError:
        return HTMLResponse(NOT_FOUND_PAGE, status_code=status.HTTP_404_NOT_FOUND)
    except StoreUnavailableError as e:
        raise HTTPException(status_code=500, detail=str(e))

    ip_address = get_client_ip(request)
    user_agent = request.headers.get("user-agent")

    # Every served redirect is tracked, cache hit or not
    tracker.submit(ClickVisit(
        short_code=short_code,
        short_link_id=resolution.short_link_id,
        referrer=request.headers.get("referer"),
        user_agent=user_agent,
        ip_address=ip_address,
    ))
    log_url_access(
        short_code=short_code,
        ip_address=ip_address,
        user_agent=user_agent,
        source=resolution.source,
    )

    return RedirectResponse(url=resolution.original_url, status_code=status.HTTP_302_FOUND)
