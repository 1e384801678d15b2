"""Qt model exposing per-host statistics snapshots using model/view pattern."""

import math

from PySide6.QtCore import QAbstractTableModel, QModelIndex, Qt, QTimer
from PySide6.QtGui import QColor

from pingwatch.registry import HostRegistry
from pingwatch.stats import HostStatus
from pingwatch.status_table import StatusTable

# (header, DisplaySettings flag or None if always shown)
COLUMNS = [
    ("Name", "show_name"),
    ("Address", "show_address"),
    ("Status", None),
    ("Latency (ms)", "show_latency"),
    ("Mean (ms)", "show_mean"),
    ("Median (ms)", "show_median"),
    ("P95 (ms)", "show_p95"),
    ("Min/Max (ms)", "show_min_max"),
    ("StdDev (ms)", "show_stddev"),
    ("Jitter (ms)", "show_rtp_jitter"),
    ("Jitter mean (ms)", "show_rtp_mean_jitter"),
    ("Jitter median (ms)", "show_rtp_median_jitter"),
    ("MOS", "show_mos"),
    ("Availability (%)", "show_availability"),
    ("Loss", "show_loss"),
    ("Outliers", "show_outliers"),
    ("Streak", "show_streak"),
]

LATENCY_WARN_MS = 150.0
LATENCY_BAD_MS = 300.0

# Colour-blind safe palette
COLOR_DOWN = QColor(213, 94, 0)  # Vermilion
COLOR_BAD = QColor(204, 121, 167)  # Reddish purple
COLOR_WARN = QColor(230, 159, 0)  # Orange
COLOR_OK = QColor(0, 114, 178)  # Blue


def latency_level(rtt: float) -> str:
    """Classify an RTT as "down", "bad", "warn" or "ok"."""
    if math.isnan(rtt):
        return "down"
    if rtt > LATENCY_BAD_MS:
        return "bad"
    if rtt > LATENCY_WARN_MS:
        return "warn"
    return "ok"


_LEVEL_COLORS = {
    "down": COLOR_DOWN,
    "bad": COLOR_BAD,
    "warn": COLOR_WARN,
    "ok": COLOR_OK,
}


def _ms(value: float) -> str:
    return "--" if math.isnan(value) else f"{value:.1f}"


class HostStatusModel(QAbstractTableModel):
    """Read-only table of hosts and their latest statistics.

    Rows follow registry order. Data comes from snapshots, so painting never
    touches the live status table.
    """

    def __init__(self, registry: HostRegistry, status_table: StatusTable, parent=None):
        super().__init__(parent)
        self.registry = registry
        self.status_table = status_table

        self._rows = []  # [(HostConfig, HostStatus)]
        self._columns = [header for header, _flag in COLUMNS]

        self.timer = QTimer(self)
        self.timer.timeout.connect(self.refresh)

    def rowCount(self, parent=QModelIndex()):
        """Return the number of rows (hosts)."""
        if parent.isValid():
            return 0
        return len(self._rows)

    def columnCount(self, parent=QModelIndex()):
        """Return the number of columns."""
        if parent.isValid():
            return 0
        return len(self._columns)

    def refresh(self):
        """Re-read the host list and a fresh statistics snapshot."""
        hosts = self.registry.snapshot()
        statuses = self.status_table.snapshot()

        self.beginResetModel()
        self._rows = [(host, statuses.get(host.address, HostStatus())) for host in hosts]
        self.endResetModel()

    def start_auto_refresh(self, interval_ms: int = 1000):
        """Poll the status table at a fixed cadence."""
        self.refresh()
        self.timer.start(interval_ms)

    def stop_auto_refresh(self):
        self.timer.stop()

    def _cell_text(self, col: int, host, status: HostStatus) -> str:
        if col == 0:
            return host.name
        if col == 1:
            return host.address
        if col == 2:
            if status.sent == 0:
                return "..."
            return "UP" if status.alive else "DOWN"

        if status.sent == 0:
            return ""

        if col == 3:
            return _ms(status.latency)
        elif col == 4:
            return _ms(status.mean)
        elif col == 5:
            return _ms(status.median)
        elif col == 6:
            return _ms(status.p95)
        elif col == 7:
            return f"{status.min_rtt:.1f}/{status.max_rtt:.1f}"
        elif col == 8:
            return _ms(status.stddev)
        elif col == 9:
            return _ms(status.rtp_jitter)
        elif col == 10:
            return _ms(status.rtp_jitter_mean)
        elif col == 11:
            return _ms(status.rtp_jitter_median)
        elif col == 12:
            return f"{status.mos:.2f}"
        elif col == 13:
            return f"{status.availability:.1f}"
        elif col == 14:
            return f"{status.lost}/{status.sent}"
        elif col == 15:
            return str(status.outliers)
        elif col == 16:
            sign = "+" if status.streak_success else "-"
            return f"{sign}{status.streak}"
        return ""

    def data(self, index, role=Qt.DisplayRole):
        """Return data for a given cell."""
        if not index.isValid():
            return None

        if index.row() >= len(self._rows) or index.row() < 0:
            return None

        host, status = self._rows[index.row()]
        col = index.column()
        if not 0 <= col < len(COLUMNS):
            return None

        flag = COLUMNS[col][1]
        if flag is not None and not getattr(host.display, flag):
            return "" if role == Qt.DisplayRole else None

        if role == Qt.DisplayRole:
            return self._cell_text(col, host, status)

        elif role == Qt.ForegroundRole:
            if col in (2, 3) and status.sent > 0:
                rtt = status.latency if status.alive else math.nan
                return _LEVEL_COLORS[latency_level(rtt)]

        elif role == Qt.TextAlignmentRole:
            if col <= 1:
                return Qt.AlignLeft | Qt.AlignVCenter
            elif col == 2:
                return Qt.AlignCenter
            else:
                return Qt.AlignRight | Qt.AlignVCenter

        return None

    def headerData(self, section, orientation, role=Qt.DisplayRole):
        """Return header data."""
        if role == Qt.DisplayRole and orientation == Qt.Horizontal:
            if 0 <= section < len(self._columns):
                return self._columns[section]
        return None

    def flags(self, index):
        """Return item flags (read-only)."""
        if not index.isValid():
            return Qt.NoItemFlags
        return Qt.ItemIsEnabled | Qt.ItemIsSelectable

    def status_for_row(self, row: int) -> HostStatus | None:
        """Get the snapshot behind a row (for tooltips, details, export)."""
        if 0 <= row < len(self._rows):
            return self._rows[row][1]
        return None
