from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

import gspread.utils as a1

from .actions import Actor, get_schedule_data, require_manager
from .config import ROLE_COLORS, TIME_OFF_LABEL
from .quotas import with_backoff
from .schedule import WeekSchedule
from .store import Stores
from .utils import fmt_time
from .weeks import day_header, published_sheet_title

log = logging.getLogger(__name__)

HEADER_ROW = 2
FIRST_EMPLOYEE_ROW = 3
NAME_COL_WIDTH = 150
DAY_COL_WIDTH = 120
BORDER_COLOR = "#cccccc"


@dataclass
class PublishedGrid:
    title: str
    values: List[List[str]]
    # (row, col) 1-based → hex colour for the two-row cell block starting there
    colors: Dict[Tuple[int, int], str] = field(default_factory=dict)

    @property
    def n_cols(self) -> int:
        return max((len(r) for r in self.values), default=1)


def role_color(role: str) -> str:
    return ROLE_COLORS.get((role or "").strip(), ROLE_COLORS["default"])


def build_published_grid(data: WeekSchedule) -> PublishedGrid:
    days = data.week.days()
    width = 1 + len(days)
    values: List[List[str]] = [
        [f"Schedule {data.week_range}"] + [""] * (width - 1),
        ["Staff"] + [day_header(d) for d in days],
    ]
    colors: Dict[Tuple[int, int], str] = {}
    col_for_day = {d: i for i, d in enumerate(days, start=2)}

    for idx, emp in enumerate(data.employees):
        top = FIRST_EMPLOYEE_ROW + 2 * idx
        name_row = [emp.name] + [""] * (width - 1)
        role_row = [emp.role] + [""] * (width - 1)

        for d, col in col_for_day.items():
            a = data.assignment_for(emp.name, d)
            st = data.shifts_by_name.get(a.shift_name) if a else None
            if st is not None:
                name_row[col - 1] = f"{fmt_time(st.start)} - {fmt_time(st.end)}"
                role_row[col - 1] = emp.role
                colors[(top, col)] = role_color(emp.role)
            elif data.time_off_for(emp.email, d):
                name_row[col - 1] = TIME_OFF_LABEL
                colors[(top, col)] = ROLE_COLORS["default"]
        values += [name_row, role_row]

    return PublishedGrid(title=published_sheet_title(data.week), values=values, colors=colors)


def _rgb(hex_color: str) -> dict:
    h = hex_color.strip().lstrip("#")
    r, g, b = (int(h[i:i + 2], 16) / 255.0 for i in (0, 2, 4))
    return {"red": r, "green": g, "blue": b}


def _reset_formats_request(sheet_id: int) -> dict:
    return {"repeatCell": {
        "range": {"sheetId": sheet_id},
        "cell": {"userEnteredFormat": {}},
        "fields": "userEnteredFormat",
    }}


def _layout_requests(sheet_id: int, n_rows: int, n_cols: int) -> List[dict]:
    """Grid borders under the header and fixed column widths."""
    reqs: List[dict] = []
    if n_rows >= FIRST_EMPLOYEE_ROW:
        line = {"style": "SOLID", "color": _rgb(BORDER_COLOR)}
        reqs.append({"updateBorders": {
            "range": {"sheetId": sheet_id, "startRowIndex": FIRST_EMPLOYEE_ROW - 1, "endRowIndex": n_rows,
                      "startColumnIndex": 0, "endColumnIndex": n_cols},
            "top": line, "bottom": line, "left": line, "right": line,
            "innerHorizontal": line, "innerVertical": line,
        }})
    widths = [(0, 1, NAME_COL_WIDTH)]
    if n_cols > 1:
        widths.append((1, n_cols, DAY_COL_WIDTH))
    for start, end, px in widths:
        reqs.append({"updateDimensionProperties": {
            "range": {"sheetId": sheet_id, "dimension": "COLUMNS", "startIndex": start, "endIndex": end},
            "properties": {"pixelSize": px},
            "fields": "pixelSize",
        }})
    return reqs


def write_published_grid(stores: Stores, grid: PublishedGrid):
    ctx = stores.ctx
    ws = ctx.find(grid.title)
    if ws is not None:
        # clear() keeps formatting
        with_backoff(ws.clear)
        with_backoff(ctx.ss.batch_update, {"requests": [_reset_formats_request(ws.id)]})
    else:
        ws = ctx.add_worksheet(grid.title, rows=max(len(grid.values) + 5, 20), cols=grid.n_cols + 1, index=0)

    end = a1.rowcol_to_a1(len(grid.values), grid.n_cols)
    with_backoff(ws.update, range_name=f"A1:{end}", values=grid.values)

    last_col = a1.rowcol_to_a1(HEADER_ROW, grid.n_cols)
    formats = [
        {"range": "A1", "format": {"textFormat": {"bold": True, "fontSize": 12}}},
        {"range": f"A{HEADER_ROW}:{last_col}",
         "format": {"textFormat": {"bold": True}, "horizontalAlignment": "CENTER"}},
        {"range": f"A{HEADER_ROW}", "format": {"horizontalAlignment": "LEFT"}},
    ]
    if len(grid.values) >= FIRST_EMPLOYEE_ROW:
        formats.append({
            "range": f"B{FIRST_EMPLOYEE_ROW}:{end}",
            "format": {"horizontalAlignment": "CENTER", "verticalAlignment": "MIDDLE",
                       "textFormat": {"fontSize": 9}},
        })
        for r in range(FIRST_EMPLOYEE_ROW, len(grid.values) + 1, 2):
            formats.append({"range": f"A{r}", "format": {"textFormat": {"bold": True}}})
            formats.append({"range": f"A{r + 1}",
                            "format": {"textFormat": {"fontSize": 9, "foregroundColor": _rgb("#666666")}}})
    for (r, c), color in grid.colors.items():
        rng = f"{a1.rowcol_to_a1(r, c)}:{a1.rowcol_to_a1(r + 1, c)}"
        formats.append({"range": rng, "format": {"backgroundColor": _rgb(color)}})
    with_backoff(ws.batch_format, formats)
    with_backoff(ctx.ss.batch_update, {"requests": _layout_requests(ws.id, len(grid.values), grid.n_cols)})
    with_backoff(ws.freeze, rows=HEADER_ROW, cols=1)
    ctx.invalidate(grid.title)
    return ws


def publish_schedule(stores: Stores, actor: Actor, week_start) -> str:
    require_manager(actor, "publish schedules")
    data = get_schedule_data(stores, week_start)
    grid = build_published_grid(data)
    write_published_grid(stores, grid)
    log.info("Published %s (%d employees, %d shifts)", grid.title, len(data.employees), len(data.assignments))
    return f"Successfully published schedule to '{grid.title}'."
