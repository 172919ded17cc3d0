from services.errors import ValidationError
from services.operating_hours import OpeningWindow
from services.timeunit import WallTime


class SlotRange:
    """
    Candidate start times inside an opening window, ``granularity`` minutes apart.

    Lazy and restartable: every iteration walks the window again from the
    opening time, so the same window and granularity always give the same slots.
    """

    def __init__(self, window: OpeningWindow, granularity: int = 60):
        if not isinstance(granularity, int) or isinstance(granularity, bool) or granularity <= 0:
            raise ValidationError("Slot length must be a positive number of minutes", field="slot_minutes")
        self.window = window
        self.granularity = granularity

    def __iter__(self):
        if not self.window.is_open:
            return
        start = self.window.open.minutes
        last_start = self.window.close.minutes - self.granularity
        while start <= last_start:
            yield WallTime(start)
            start += self.granularity

    def __len__(self):
        if not self.window.is_open:
            return 0
        span = self.window.close.minutes - self.window.open.minutes
        return max(span // self.granularity, 0)

    def intervals(self):
        # start + granularity never passes the closing time, so add() cannot overflow
        for start in self:
            yield start, start.add(self.granularity)
