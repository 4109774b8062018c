from __future__ import annotations

import logging

from django.shortcuts import redirect, render
from django.views.decorators.http import require_GET

from .data_processing_cases import build_view
from .snapshot import SnapshotStore


logger = logging.getLogger(__name__)

PAGES = [
    ("demographic", "Demographic View"),
    ("device", "Device Performance"),
    ("weekly", "Weekly Performance"),
    ("region", "Regional Performance"),
]


def _page(request, page: str):
    store = SnapshotStore().load()
    context = {
        "pages": PAGES,
        "active": page,
        "title": dict(PAGES)[page],
        "error": store.error,
    }

    aggregates = store.aggregates()
    if aggregates is not None:
        context.update(build_view(page, aggregates, request.GET))
    else:
        logger.warning("Rendering %s view without data: %s", page, store.error)

    return render(request, "dashboard/page.html", context)


def index(request):
    return redirect("demographic")


@require_GET
def demographic_view(request):
    return _page(request, "demographic")


@require_GET
def device_view(request):
    return _page(request, "device")


@require_GET
def weekly_view(request):
    return _page(request, "weekly")


@require_GET
def region_view(request):
    return _page(request, "region")
