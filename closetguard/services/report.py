from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Sequence

from ..core.timeutil import now_utc
from ..domain.errors import ReportBusy
from ..domain.interfaces import ReportGenerator
from ..domain.models import SensorReading, Thresholds

logger = logging.getLogger(__name__)

REPORT_FAILED_TEXT = "Failed to reach the AI analysis service. Please check the network settings."
REPORT_EMPTY_TEXT = "Unable to generate an analysis report right now."

SYSTEM_INSTRUCTION = "You are a helpful wardrobe caretaker."


def build_prompt(
    current: SensorReading,
    history: Sequence[SensorReading],
    thresholds: Thresholds,
    window: int = 20,
) -> str:
    recent = list(history)[-window:] if window > 0 else []
    if recent:
        avg_hum = sum(r.humidity for r in recent) / len(recent)
    else:
        avg_hum = current.humidity

    return (
        "You are an expert assistant for smart-home hygiene and garment care.\n\n"
        "Current wardrobe sensor readings:\n"
        f"- Temperature: {current.temperature:.1f}°C\n"
        f"- Humidity: {current.humidity:.1f}% (alarm threshold is {thresholds.max_humidity_percent:.0f}%)\n"
        f"- Mold risk index: {current.mold_index:.0f} / 100\n\n"
        f"History (average of the last {len(recent)} readings):\n"
        f"- Average humidity: {avg_hum:.1f}%\n\n"
        "Write a short wardrobe health report (150 words or fewer) that:\n"
        "1. Assesses whether current conditions favour mold growth.\n"
        "2. Gives concrete actions (e.g. check door seals, run UV sterilization, add desiccant bags).\n"
        "3. Keeps a caring, professional tone.\n\n"
        "Answer in Markdown; emoji are welcome."
    )


@dataclass(frozen=True)
class ReportResult:
    text: str
    generated_at: datetime
    ok: bool


class ReportService:
    """
    Runs one report request at a time, off the tick loop.

    Collaborator faults become REPORT_FAILED_TEXT and are never re-raised.
    """

    def __init__(
        self,
        generator: ReportGenerator,
        history_window: int = 20,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self._generator = generator
        self._window = history_window
        self._clock = clock
        self._busy = False
        self._task: Optional[asyncio.Task] = None
        self.latest: Optional[ReportResult] = None

    @property
    def busy(self) -> bool:
        return self._busy

    def _claim(self) -> None:
        if self._busy:
            raise ReportBusy("A report is already being generated")
        self._busy = True

    async def generate(
        self,
        current: SensorReading,
        history: Sequence[SensorReading],
        thresholds: Thresholds,
    ) -> str:
        self._claim()
        return await self._run(current, history, thresholds)

    def start(
        self,
        current: SensorReading,
        history: Sequence[SensorReading],
        thresholds: Thresholds,
    ) -> asyncio.Task:
        """Schedule a report in the background and return immediately."""
        self._claim()
        self._task = asyncio.create_task(self._run(current, history, thresholds), name="report")
        return self._task

    async def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None

    async def _run(
        self,
        current: SensorReading,
        history: Sequence[SensorReading],
        thresholds: Thresholds,
    ) -> str:
        ok = False
        try:
            prompt = build_prompt(current, history, thresholds, self._window)
            logger.info("Report requested (hum=%.1f mold=%.0f)", current.humidity, current.mold_index)
            text = await self._generator.generate(prompt, SYSTEM_INSTRUCTION)
            if text and text.strip():
                ok = True
            else:
                text = REPORT_EMPTY_TEXT
        except Exception as e:
            logger.warning("Report generation failed: %s", e, exc_info=True)
            text = REPORT_FAILED_TEXT
        finally:
            self._busy = False

        self.latest = ReportResult(text=text, generated_at=self._clock(), ok=ok)
        return text
