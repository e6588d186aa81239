"""In-memory stand-ins for the gspread workbook, plus seeded stores."""
import itertools

import gspread
import gspread.utils as a1
import pytest

from shift_app.actions import Actor
from shift_app.config import REQUIRED_SHEETS
from shift_app.models import Employee
from shift_app.notify import RecordingNotifier
from shift_app.store import SheetContext, Stores

_ids = itertools.count(100)


class FakeWorksheet:
    def __init__(self, title, rows=None):
        self.title = title
        self.id = next(_ids)
        self.data = [[str(c) for c in r] for r in (rows or [])]
        self.formats = []
        self.frozen = (0, 0)
        self.reads = 0

    @property
    def row_count(self):
        return max(len(self.data), 1000)

    def get_all_values(self):
        self.reads += 1
        return [list(r) for r in self.data]

    def append_row(self, values, value_input_option="RAW"):
        self.data.append([str(v) for v in values])

    def delete_rows(self, start_index, end_index=None):
        end_index = end_index or start_index
        del self.data[start_index - 1:end_index]

    def update(self, range_name=None, values=None, **kwargs):
        r0, c0 = a1.a1_to_rowcol(range_name.split(":")[0])
        for i, row in enumerate(values):
            r = r0 - 1 + i
            while len(self.data) <= r:
                self.data.append([])
            line = self.data[r]
            for j, v in enumerate(row):
                c = c0 - 1 + j
                while len(line) <= c:
                    line.append("")
                line[c] = str(v)

    def clear(self):
        # values only, like values_clear
        self.data = []

    def format(self, ranges, fmt):
        self.formats.append({"range": ranges, "format": fmt})

    def batch_format(self, formats):
        self.formats.extend(formats)

    def freeze(self, rows=None, cols=None):
        self.frozen = (rows or 0, cols or 0)


class FakeSpreadsheet:
    def __init__(self):
        self.id = "fake-workbook"
        self.sheets = []
        self.requests = []

    def worksheets(self):
        return list(self.sheets)

    def worksheet(self, title):
        for ws in self.sheets:
            if ws.title == title:
                return ws
        raise gspread.WorksheetNotFound(title)

    def add_worksheet(self, title, rows=1000, cols=26, index=None):
        ws = FakeWorksheet(title)
        if index is None:
            self.sheets.append(ws)
        else:
            self.sheets.insert(index, ws)
        return ws

    def batch_update(self, body):
        for req in body["requests"]:
            self.requests.append(req)
            fill = req.get("repeatCell")
            if fill and fill["fields"] == "userEnteredFormat":
                for ws in self.sheets:
                    if ws.id == fill["range"]["sheetId"]:
                        ws.formats = []
        return {"replies": [{} for _ in body["requests"]]}

    def add_sheet(self, title, rows):
        ws = FakeWorksheet(title, rows)
        self.sheets.append(ws)
        return ws


EMPLOYEES = [
    ["e1", "Alice Park", "alice@x.com", "Manager"],
    ["e2", "Bob Stone", "bob@x.com", "Cashier"],
    ["e3", "Cara Diaz", "cara@x.com", "assistant manager "],
]
SHIFTS = [
    ["Day", "09:00", "17:00"],
    ["Evening", "16:00", "00:00"],
    ["Night", "22:00", "06:00"],
]


@pytest.fixture
def workbook():
    return FakeSpreadsheet()


@pytest.fixture
def seeded(workbook):
    workbook.add_sheet("Employees", [REQUIRED_SHEETS["Employees"]] + EMPLOYEES)
    workbook.add_sheet("Shifts", [REQUIRED_SHEETS["Shifts"]] + SHIFTS)
    workbook.add_sheet("Schedule_Log", [REQUIRED_SHEETS["Schedule_Log"]])
    workbook.add_sheet("Time_Off_Requests", [REQUIRED_SHEETS["Time_Off_Requests"]])
    return workbook


@pytest.fixture
def stores(seeded):
    return Stores(SheetContext(seeded))


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def manager():
    emp = Employee(id="e1", name="Alice Park", email="alice@x.com", role="Manager")
    return Actor(email="alice@x.com", employee=emp)


@pytest.fixture
def cashier():
    emp = Employee(id="e2", name="Bob Stone", email="bob@x.com", role="Cashier")
    return Actor(email="bob@x.com", employee=emp)
