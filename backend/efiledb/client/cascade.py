# backend/efiledb/client/cascade.py
"""
Cascading reference-data loads for the work-request intake form.

Each dependent list (subtowns, nature of work, executive engineers) is
loaded in a named slot keyed by the selection that triggered it. Starting
a load in a slot cancels whatever that slot was still fetching, so a slow
response for an old selection can never overwrite the list for the
current one.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Hashable, List, Optional, Tuple

from efiledb.apps.work_requests import intake

from .api import EfilingClient

logger = logging.getLogger(__name__)

Loader = Callable[[], Awaitable[Any]]


class CascadeLoader:
    def __init__(self) -> None:
        self._slots: Dict[str, Tuple[Hashable, "asyncio.Task[Any]"]] = {}

    def current_key(self, slot: str) -> Optional[Hashable]:
        entry = self._slots.get(slot)
        return entry[0] if entry else None

    def cancel(self, slot: str) -> None:
        entry = self._slots.pop(slot, None)
        if entry and not entry[1].done():
            entry[1].cancel()

    def cancel_all(self) -> None:
        for slot in list(self._slots):
            self.cancel(slot)

    async def load(self, slot: str, key: Hashable, loader: Loader, *, default: Any = None) -> Any:
        """
        Run ``loader`` for ``key`` in ``slot``. Returns ``default`` when a
        newer load replaced this one before it finished.
        """
        self.cancel(slot)
        task = asyncio.ensure_future(loader())
        self._slots[slot] = (key, task)
        try:
            return await task
        except asyncio.CancelledError:
            entry = self._slots.get(slot)
            if entry is None or entry[1] is not task:
                return default
            raise
        finally:
            entry = self._slots.get(slot)
            if entry is not None and entry[1] is task:
                del self._slots[slot]

    async def gather(self, loaders: Dict[str, Loader]) -> Dict[str, List[Any]]:
        """Run independent loads together; a failed load yields an empty list."""
        names = list(loaders)
        results = await asyncio.gather(*(loaders[name]() for name in names), return_exceptions=True)
        out: Dict[str, List[Any]] = {}
        for name, result in zip(names, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.warning("Reference load failed", extra={"list": name, "error": str(result)})
                out[name] = []
            else:
                out[name] = list(result or [])
        return out


class IntakeCascade:
    """State of the intake form's dependent selects."""

    def __init__(self, client: EfilingClient, loader: Optional[CascadeLoader] = None):
        self.client = client
        self.loader = loader or CascadeLoader()
        self.lists: Dict[str, List[Any]] = {
            "towns": [],
            "complaint_types": [],
            "divisions": [],
            "social_media_people": [],
            "subtowns": [],
            "subtypes": [],
            "executive_engineers": [],
        }
        self.department: Optional[Dict[str, Any]] = None
        self.mode = intake.IntakeMode.TOWN

    async def load_initial(self) -> None:
        results = await self.loader.gather(
            {
                "towns": self.client.list_towns,
                "complaint_types": self.client.list_complaint_types,
                "divisions": self.client.list_divisions,
                "social_media_people": self.client.list_social_media_people,
            }
        )
        self.lists.update(results)

    def layout(self) -> List[intake.FieldSpec]:
        return intake.build_layout(self.mode)

    async def _load_list(self, slot: str, key: Hashable, loader: Loader) -> None:
        try:
            result = await self.loader.load(slot, key, loader, default=None)
        except Exception as exc:
            logger.warning("Dependent load failed", extra={"list": slot, "error": str(exc)})
            result = []
        if result is not None:
            self.lists[slot] = list(result)

    async def select_department(self, department: Optional[Dict[str, Any]]) -> intake.IntakeMode:
        self.department = department
        self.mode = intake.intake_mode(department)
        self.lists["executive_engineers"] = []
        self.loader.cancel("executive_engineers")
        if self.mode == intake.IntakeMode.DIVISION:
            self.loader.cancel("subtowns")
            self.lists["subtowns"] = []

        type_id = intake.normalize_int((department or {}).get("id"))
        if type_id is None:
            self.lists["subtypes"] = []
            self.loader.cancel("subtypes")
        else:
            await self._load_list(
                "subtypes",
                type_id,
                lambda: self.client.list_complaint_subtypes(type_id),
            )
        return self.mode

    async def select_town(self, town_id: Any) -> None:
        town = intake.normalize_int(town_id)
        if town is None:
            self.loader.cancel("subtowns")
            self.lists["subtowns"] = []
        else:
            await self._load_list("subtowns", town, lambda: self.client.list_subtowns(town))
        await self.refresh_engineers(town_id=town)

    async def select_division(self, division_id: Any) -> None:
        await self.refresh_engineers(division_id=intake.normalize_int(division_id))

    async def refresh_engineers(self, *, town_id: Optional[int] = None, division_id: Optional[int] = None) -> None:
        type_id = intake.normalize_int((self.department or {}).get("id"))
        area = division_id if self.mode == intake.IntakeMode.DIVISION else town_id
        if type_id is None or area is None:
            self.loader.cancel("executive_engineers")
            self.lists["executive_engineers"] = []
            return
        if self.mode == intake.IntakeMode.DIVISION:
            key = ("division", area, type_id)
            fetch = lambda: self.client.list_executive_engineers(complaint_type_id=type_id, division_id=area)
        else:
            key = ("town", area, type_id)
            fetch = lambda: self.client.list_executive_engineers(complaint_type_id=type_id, town_id=area)
        await self._load_list("executive_engineers", key, fetch)
