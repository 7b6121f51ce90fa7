"""Server-rendered pages. Each page is static HTML whose script talks to the JSON API."""

from functools import lru_cache
from pathlib import Path
from fastapi import APIRouter
from fastapi.responses import HTMLResponse
from shipment_service.core_settings import get_settings

TEMPLATE_DIR = Path(__file__).resolve().parent.parent.parent / "templates"

PAGES = {
    "/": "index.html",
    "/login": "login.html",
    "/register": "register.html",
    "/dashboard": "dashboard.html",
    "/shipments": "shipments.html",
    "/track": "track.html",
}

router = APIRouter(include_in_schema=False)

@lru_cache
def render(template: str) -> str:
    html = (TEMPLATE_DIR / template).read_text(encoding="utf-8")
    layout = (TEMPLATE_DIR / "layout.html").read_text(encoding="utf-8")
    return (
        layout.replace("{{ content }}", html)
        .replace("{{ api_prefix }}", get_settings().API_PREFIX)
    )

def _page(template: str):
    def view():
        return HTMLResponse(render(template))
    view.__name__ = f"page_{template.split('.')[0]}"
    return view

for path, template in PAGES.items():
    router.add_api_route(path, _page(template), methods=["GET"], response_class=HTMLResponse)
