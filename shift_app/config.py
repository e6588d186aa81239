import os
from typing import Any

# ===== workbook config =====
DEFAULT_SHEET_URL = ""
EMPLOYEES_SHEET = "Employees"
SHIFTS_SHEET = "Shifts"
SCHEDULE_LOG_SHEET = "Schedule_Log"
TIME_OFF_SHEET = "Time_Off_Requests"

REQUIRED_SHEETS = {
    EMPLOYEES_SHEET: ["ID", "Name", "Email", "Role"],
    SHIFTS_SHEET: ["Shift Name", "Start Time", "End Time"],
    SCHEDULE_LOG_SHEET: ["Date", "Employee Name", "Shift Name"],
    TIME_OFF_SHEET: ["Request ID", "Employee Name", "Employee Email", "Start Date",
                     "End Date", "Reason", "Status", "Request Date"],
}
PUBLISHED_PREFIX = "Schedule "

# ===== roles =====
AUTHORIZED_ROLES = ["Manager", "Assistant Manager"]
ROLE_COLORS = {
    "Manager": "#aed6f1",
    "Supervisor": "#f1948a",
    "Trainee": "#a9dfbf",
    "Assistant Manager": "#f7dc6f",
    "Sales Associate": "#d7bde2",
    "Cashier": "#f5b041",
    "default": "#eeeeee",
}

# ===== time off =====
STATUS_PENDING = "Pending"
STATUS_APPROVED = "Approved"
STATUS_DENIED = "Denied"
TIME_OFF_LABEL = "Time Off"

# ===== caching / quotas =====
READ_CACHE_TTL_SEC = 20
RETRY_ATTEMPTS = 6
RETRY_BASE_SLEEP = 0.6

# ===== logging =====
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_setting(name: str, default: Any = None) -> Any:
    """Streamlit secrets first, then the environment."""
    try:
        import streamlit as st
        if name in st.secrets:
            return st.secrets[name]
    except Exception:
        # no secrets.toml outside a running app
        pass
    return os.environ.get(name, default)
