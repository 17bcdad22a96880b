from abc import ABC, abstractmethod
from functools import partial
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from apbd.csv_io import EXPORT_PREFIX, FULL_EXPORT_PREFIX, export_filename, to_csv
from apbd.domain import BudgetRecord, Route, SearchFilters
from apbd.errors import ApbdError, RenderError, ValidationError
from apbd.events import MESSAGES, Notifier
from apbd.formatting import format_full
from apbd.functional import Either
from apbd.gateway import DataGateway
from apbd.logs import get_logger
from apbd.transforms import (
    admin_statistics,
    category_summary,
    category_year_series,
    comparison_series,
    group_by,
    totals_by_category,
    subcategory_series,
    year_series,
)

log = get_logger("view")

RELEASE_METHODS = ("destroy", "release", "close", "empty")


class ChartRegistry:
    """Chart handles currently on screen; ``clear`` releases all of them."""

    def __init__(self):
        self._handles: List[Any] = []

    def add(self, handle: Any) -> Any:
        if handle is not None:
            self._handles.append(handle)
        return handle

    def clear(self) -> int:
        released = 0
        for handle in self._handles:
            for name in RELEASE_METHODS:
                release = getattr(handle, name, None)
                if callable(release):
                    release()
                    released += 1
                    break
        self._handles = []
        return released

    def __len__(self) -> int:
        return len(self._handles)


class Renderer(ABC):
    """Drawing surface. Methods raise RenderError when their target is missing."""

    @abstractmethod
    def bar_chart(self, key: str, title: str, series: Dict[str, list], color: Optional[str] = None) -> Any:
        ...

    @abstractmethod
    def grouped_bar_chart(self, key: str, title: str, series: Dict[str, list]) -> Any:
        ...

    @abstractmethod
    def table(self, key: str, records: Sequence[BudgetRecord], max_rows: int, show_actions: bool = False) -> None:
        ...

    @abstractmethod
    def summary(self, key: str, cards: Dict[str, Any]) -> None:
        ...


class ViewController:
    """Page lifecycle: fetch through the gateway, aggregate, hand to the renderer.

    Gateway failures come back as ``Left`` values; each one is turned into a
    notification here and the action stops.
    """

    def __init__(self, gateway: DataGateway, renderer: Renderer, notifier: Notifier,
                 charts: Optional[ChartRegistry] = None, max_rows: int = 100):
        self.gateway = gateway
        self.renderer = renderer
        self.notifier = notifier
        self.charts = charts if charts is not None else ChartRegistry()
        self.max_rows = max_rows
        self._search_seq = 0
        self.routes: Dict[Route, Callable[[], Awaitable[Any]]] = {
            Route.HOME: self.init_home,
            Route.ADMIN: self.init_admin,
        }
        for route in Route:
            if route.kategori:
                self.routes[route] = partial(self.init_category_page, route.kategori)

    # -- plumbing

    async def guard(self, action: Callable[..., Awaitable[Any]], *args) -> Any:
        """Run a page action; unexpected faults become a generic notification."""
        try:
            return await action(*args)
        except Exception:
            log.exception("Unhandled error in %s", getattr(action, "__name__", action))
            self.notifier.error(MESSAGES["system_error"])
            return None

    def _unwrap(self, result: Either[ApbdError, Any], key: str, **fmt) -> Any:
        if result.is_right():
            return result.get_or_else(None)
        error = result.get_error()
        self.notifier.error(MESSAGES[key].format(error=error.message, **fmt))
        return None

    def _render(self, draw: Callable[..., Any], *args, **kwargs) -> Any:
        try:
            return draw(*args, **kwargs)
        except RenderError as exc:
            log.debug("Render target missing: %s", exc)
            return None

    def _chart(self, draw: Callable[..., Any], *args, **kwargs) -> Any:
        return self.charts.add(self._render(draw, *args, **kwargs))

    async def initialize(self, route: Route) -> Any:
        return await self.guard(self.routes[route])

    # -- pages

    async def init_home(self) -> Optional[List[BudgetRecord]]:
        records = self._unwrap(await self.gateway.fetch_all(), "fetch_failed")
        if records is None:
            return None

        totals = totals_by_category(records)
        self.charts.clear()
        self._render(self.renderer.summary, "home-summary",
                     {k: format_full(v) for k, v in totals.items()})
        self._chart(self.renderer.bar_chart, "home-categories", "Total per Kategori (Rp)",
                    {"labels": list(totals), "values": list(totals.values())})
        self._chart(self.renderer.grouped_bar_chart, "home-years", "Perbandingan per Tahun",
                    category_year_series(records))
        return records

    async def init_category_page(self, kategori: str) -> Optional[List[BudgetRecord]]:
        records = self._unwrap(await self.gateway.fetch_by_category(kategori),
                               "fetch_category_failed", kategori=kategori)
        if records is None:
            return None
        if not records:
            self.notifier.warning(MESSAGES["no_category_data"].format(kategori=kategori.lower()))
            return records

        summary = category_summary(records)
        self.charts.clear()
        self._render(self.renderer.summary, "category-summary", {
            "Total": format_full(summary["total"]),
            "Subkategori": summary["subcategories"],
            "Jumlah Data": summary["entries"],
        })
        self._chart(self.renderer.bar_chart, "category-chart", f"Total {kategori} (Rp)",
                    subcategory_series(records))

        groups = group_by(records, "subkategori")
        if len(groups) > 1:
            for index, (subkategori, rows) in enumerate(groups.items()):
                self._chart(self.renderer.bar_chart, f"subchart-{index}", f"{subkategori} (Rp)",
                            year_series(rows), color="#3b82f6")
            self._chart(self.renderer.grouped_bar_chart, "comparison-chart",
                        f"Perbandingan Subkategori {kategori}", comparison_series(records))

        self._render(self.renderer.table, "data-table", records, self.max_rows)
        return records

    async def init_admin(self) -> Optional[List[BudgetRecord]]:
        return await self.load_admin_data()

    async def load_admin_data(self) -> Optional[List[BudgetRecord]]:
        records = self._unwrap(await self.gateway.fetch_all(), "fetch_failed")
        if records is None:
            return None
        self._render(self.renderer.table, "admin-table", records, self.max_rows, show_actions=True)
        self._render(self.renderer.summary, "admin-stats", admin_statistics(records))
        return records

    async def load_records(self) -> Optional[List[BudgetRecord]]:
        """All records for pickers; a failed fetch is notified and gives None."""
        return self._unwrap(await self.gateway.fetch_all(), "fetch_failed")

    # -- admin actions

    async def submit(self, candidate: Any) -> Optional[BudgetRecord]:
        result = await self.gateway.insert(candidate)
        if result.is_left():
            error = result.get_error()
            if isinstance(error, ValidationError):
                self.notifier.error(error.message)
            else:
                self.notifier.error(MESSAGES["insert_failed"].format(error=error.message))
            return None
        self.notifier.success(MESSAGES["inserted"])
        await self.load_admin_data()
        return result.get_or_else(None)

    async def edit(self, record_id: Any, candidate: Any) -> Optional[BudgetRecord]:
        record = self._unwrap(await self.gateway.update(record_id, candidate), "update_failed")
        if record is None:
            return None
        self.notifier.success(MESSAGES["updated"])
        await self.load_admin_data()
        return record

    async def remove(self, record_id: Any) -> bool:
        result = await self.gateway.delete(record_id)
        if result.is_left():
            self._unwrap(result, "delete_failed")
            return False
        self.notifier.success(MESSAGES["deleted"])
        await self.load_admin_data()
        return True

    async def remove_many(self, ids: Sequence[Any]) -> bool:
        result = await self.gateway.delete_many(ids)
        if result.is_left():
            self._unwrap(result, "delete_failed")
            return False
        self.notifier.success(MESSAGES["deleted_many"].format(count=len(ids)))
        await self.load_admin_data()
        return True

    async def run_search(self, filters: SearchFilters) -> Optional[List[BudgetRecord]]:
        """Search and show the results.

        A response that arrives after a newer search was started is returned
        but not drawn.
        """
        self._search_seq += 1
        seq = self._search_seq
        records = self._unwrap(await self.gateway.search(filters), "search_failed")
        if records is None or seq != self._search_seq:
            return records
        self._render(self.renderer.table, "search-table", records, self.max_rows, show_actions=True)
        self.notifier.info(MESSAGES["search_result"].format(count=len(records)))
        return records

    async def import_csv(self, text: str) -> Optional[int]:
        result = await self.gateway.import_csv(text)
        if result.is_left():
            error = result.get_error()
            if isinstance(error, ValidationError):
                self.notifier.error(MESSAGES["import_invalid"].format(
                    count=len(error.errors), errors="\n".join(error.errors[:5])))
            else:
                message = error.message
                if getattr(error, "committed", None):
                    message = f"{message} ({error.committed} data sudah tersimpan)"
                self.notifier.error(MESSAGES["import_failed"].format(error=message))
            return None
        count = result.get_or_else({}).get("count", 0)
        self.notifier.success(MESSAGES["imported"].format(count=count))
        await self.load_admin_data()
        return count

    async def export_csv(self, route: Route) -> Optional[Tuple[str, str]]:
        """CSV for the page's data as ``(filename, content)``."""
        if route.kategori:
            result = await self.gateway.fetch_by_category(route.kategori)
        else:
            result = await self.gateway.fetch_all()
        return self._export(result, EXPORT_PREFIX[route], include_id=False)

    async def export_full(self) -> Optional[Tuple[str, str]]:
        return self._export(await self.gateway.fetch_all(), FULL_EXPORT_PREFIX, include_id=True)

    def _export(self, result, prefix: str, include_id: bool) -> Optional[Tuple[str, str]]:
        records = self._unwrap(result, "export_failed")
        if records is None:
            return None
        if not records:
            self.notifier.warning(MESSAGES["export_empty"])
            return None
        self.notifier.success(MESSAGES["exported"])
        return export_filename(prefix), to_csv(records, include_id=include_id)
