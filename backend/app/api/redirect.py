import html
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from ..config import settings
from ..core.exceptions import GoneError, NotFoundError
from ..core.shortener import new_session_id
from ..services.store import RecordStore, get_store
from ..services.tracking import PasswordRequired, Visit, resolve_link, track_click
from ..utils.device import is_bot
from ..utils.geo import GeoResolver, get_geo_resolver
from ..utils.validators import get_client_ip

router = APIRouter()
logger = logging.getLogger(__name__)

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate, max-age=0",
    "Pragma": "no-cache",
    "Expires": "0",
}

PAGE_STYLE = """
    body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
           background: #f3f4f6; min-height: 100vh; display: flex; align-items: center;
           justify-content: center; margin: 0; padding: 20px; }
    .container { background: white; padding: 40px; border-radius: 12px;
                 box-shadow: 0 20px 40px rgba(0,0,0,0.1); max-width: 400px; width: 100%;
                 text-align: center; }
    h1 { font-size: 24px; color: #1f2937; }
    p { color: #6b7280; line-height: 1.5; }
    input[type="password"] { width: 100%; box-sizing: border-box; padding: 12px 16px;
                             border: 1px solid #d1d5db; border-radius: 8px; font-size: 16px;
                             margin-bottom: 16px; }
    button { width: 100%; background: #3b82f6; color: white; border: none; padding: 12px 16px;
             border-radius: 8px; font-size: 16px; cursor: pointer; }
    .error { background: #fee2e2; color: #dc2626; padding: 12px; border-radius: 8px;
             margin-bottom: 20px; font-size: 14px; }
"""


def get_error_page(status_code: int, message: str) -> str:
    """HTML page for missing, disabled or expired links"""
    title = "Link not found" if status_code == 404 else "Link unavailable"
    return f"""<!DOCTYPE html>
<html lang="en">
<head><meta charset="UTF-8"><title>{title}</title><style>{PAGE_STYLE}</style></head>
<body>
    <div class="container">
        <h1>{status_code} - {title}</h1>
        <p>{html.escape(message)}</p>
        <a href="/">Go to the home page</a>
    </div>
</body>
</html>"""


def get_password_page(short_code: str, attempted: bool = False) -> str:
    """
    Password prompt for protected links.

    The form submits back to the same URL with a `password` query parameter.
    """
    error = '<div class="error">Incorrect password. Please try again.</div>' if attempted else ""
    action = html.escape(f"/r/{short_code}")
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Password Required</title>
    <style>{PAGE_STYLE}</style>
</head>
<body>
    <div class="container">
        <h1>Password Required</h1>
        <p>This link is password protected. Please enter the password to continue.</p>
        {error}
        <form method="get" action="{action}">
            <input type="password" id="password" name="password" placeholder="Password" required>
            <button type="submit">Access Link</button>
        </form>
    </div>
</body>
</html>"""


def _html(content: str, status_code: int) -> HTMLResponse:
    return HTMLResponse(content=content, status_code=status_code, headers=NO_CACHE_HEADERS)


@router.get("/r/{short_code}")
async def redirect_to_url(
    short_code: str,
    request: Request,
    background_tasks: BackgroundTasks,
    password: Optional[str] = None,
    store: RecordStore = Depends(get_store),
    resolver: GeoResolver = Depends(get_geo_resolver)
):
    """
    Redirect to the original URL from short code.

    Non-bot visits are recorded after the response has been sent; tracking
    problems never change the response.
    """
    try:
        link = resolve_link(store, short_code, password)
    except NotFoundError as e:
        return _html(get_error_page(404, e.message), 404)
    except GoneError as e:
        return _html(get_error_page(410, e.message), 410)
    except PasswordRequired as e:
        return _html(get_password_page(short_code, attempted=e.attempted), 200)

    user_agent = request.headers.get('user-agent', '')

    # Redirect to original URL (302 for tracking)
    response = RedirectResponse(url=link.original_url, status_code=302, headers=NO_CACHE_HEADERS)

    if is_bot(user_agent):
        logger.debug("Skipping tracking for bot on %s: %s", short_code, user_agent)
        return response

    session_id = None
    if settings.VISITOR_COOKIE_ENABLED:
        session_id = request.cookies.get(settings.VISITOR_COOKIE_NAME)
    if not session_id:
        session_id = new_session_id()
        if settings.VISITOR_COOKIE_ENABLED:
            response.set_cookie(
                settings.VISITOR_COOKIE_NAME,
                session_id,
                max_age=settings.VISITOR_COOKIE_MAX_AGE,
                httponly=True,
                samesite="lax",
            )

    visit = Visit(
        ip_address=get_client_ip(request),
        user_agent=user_agent,
        referer=request.headers.get('referer') or None,
        session_id=session_id,
    )
    background_tasks.add_task(track_click, store, resolver, link, visit)

    return response
