"""Structured timing log for level builds; writes JSONL on request.

Usage:
    from doomlevel.perf import perf

    perf.stage("parse")
    with perf.timer("load_level", level="E1M1"):
        level = load_level(wad, "E1M1")

    perf.finish()
    perf.summary()       # rich table on the shared console
    perf.save("runs")    # writes runs/YYYYMMDD_HHMMSS.jsonl
"""

import json
import os
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from rich.table import Table

from doomlevel.config import console


@dataclass
class PerfEvent:
    timestamp: float
    elapsed_s: float
    stage: str
    operation: str
    duration_ms: float
    success: bool = True
    error: str | None = None
    meta: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        d = {
            "timestamp": self.timestamp,
            "elapsed_s": round(self.elapsed_s, 3),
            "stage": self.stage,
            "operation": self.operation,
            "duration_ms": round(self.duration_ms, 2),
            "success": self.success,
        }
        if self.error:
            d["error"] = self.error
        d.update(self.meta)
        return d


class PerfLogger:
    def __init__(self):
        self._t0: float = time.time()
        self._events: list[PerfEvent] = []
        self._current_stage: str = ""
        self._stage_starts: dict[str, float] = {}

    def start(self):
        self._t0 = time.time()
        self._events.clear()
        self._current_stage = ""
        self._stage_starts.clear()

    def _close_stage(self, now: float):
        if self._current_stage and self._current_stage in self._stage_starts:
            self._events.append(PerfEvent(
                timestamp=now,
                elapsed_s=now - self._t0,
                stage=self._current_stage,
                operation="stage_end",
                duration_ms=(now - self._stage_starts[self._current_stage]) * 1000,
            ))

    def stage(self, name: str):
        """Mark entry into a build stage."""
        now = time.time()
        self._close_stage(now)
        self._current_stage = name
        self._stage_starts[name] = now
        self._events.append(PerfEvent(
            timestamp=now,
            elapsed_s=now - self._t0,
            stage=name,
            operation="stage_start",
            duration_ms=0,
        ))

    def event(self, operation: str, duration_ms: float, success: bool = True,
              error: str | None = None, **meta):
        """Record a single timed event."""
        now = time.time()
        self._events.append(PerfEvent(
            timestamp=now,
            elapsed_s=now - self._t0,
            stage=self._current_stage,
            operation=operation,
            duration_ms=duration_ms,
            success=success,
            error=error,
            meta=meta,
        ))

    @contextmanager
    def timer(self, operation: str, **meta):
        """Context manager that times a block and records the event."""
        t = time.time()
        err = None
        ok = True
        try:
            yield
        except Exception as e:
            err = f"{type(e).__name__}: {e}"
            ok = False
            raise
        finally:
            dur = (time.time() - t) * 1000
            self.event(operation, dur, success=ok, error=err, **meta)

    def finish(self):
        """Close the final stage."""
        self._close_stage(time.time())
        self._current_stage = ""

    def summary(self):
        """Print per-stage and per-operation timings."""
        stages = Table(title="Stages", title_justify="left")
        stages.add_column("stage")
        stages.add_column("ms", justify="right")
        stages.add_column("%", justify="right")

        durations = {ev.stage: ev.duration_ms for ev in self._events if ev.operation == "stage_end"}
        total = sum(durations.values())
        for name, dur in durations.items():
            pct = dur / total * 100 if total > 0 else 0.0
            stages.add_row(name, f"{dur:.1f}", f"{pct:.1f}")
        stages.add_row("TOTAL", f"{total:.1f}", "", style="bold")
        console.print(stages)

        ops = Table(title="Operations", title_justify="left")
        for col in ("operation", "count", "min", "max", "total"):
            ops.add_column(col, justify="left" if col == "operation" else "right")
        grouped: dict[str, list[float]] = {}
        for ev in self._events:
            if ev.operation in ("stage_start", "stage_end"):
                continue
            grouped.setdefault(ev.operation, []).append(ev.duration_ms)
        for op, times in sorted(grouped.items()):
            ops.add_row(op, str(len(times)), f"{min(times):.1f}", f"{max(times):.1f}", f"{sum(times):.1f}")
        console.print(ops)

        errors = [ev for ev in self._events if not ev.success]
        for ev in errors[:5]:
            console.print(f"  [{ev.stage}] {ev.operation}: {ev.error}", style="red", highlight=False)

    def save(self, directory: str = "runs") -> str:
        """Write all events as JSONL. Returns the file path."""
        Path(directory).mkdir(parents=True, exist_ok=True)
        ts = time.strftime("%Y%m%d_%H%M%S", time.localtime(self._t0))
        path = os.path.join(directory, f"{ts}.jsonl")
        with open(path, "w") as f:
            for ev in self._events:
                f.write(json.dumps(ev.to_dict()) + "\n")
        return path

    @property
    def events(self) -> list[PerfEvent]:
        return list(self._events)


# Module-level singleton
perf = PerfLogger()
