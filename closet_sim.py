#!/usr/bin/env python3
"""
Headless closet simulation.

Runs the simulator and automation controller in a closed loop without the
web service and prints one line per tick.

Usage:
    python closet_sim.py                            # 30 ticks, automation on
    python closet_sim.py --ticks 200 --seed 7       # reproducible run
    python closet_sim.py --humidity 75 --max-humidity 60
    python closet_sim.py --manual --ventilation     # no automation, fan on
"""

from __future__ import annotations

import argparse
import logging
import random
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from closetguard.domain.controller import AutomationController
from closetguard.domain.gate import ActuatorGate
from closetguard.domain.history import HistoryBuffer
from closetguard.domain.models import Actuator, ControlMode, SensorReading, Thresholds
from closetguard.domain.simulator import EnvironmentSimulator
from closetguard.services.control_loop import ControlLoopService

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass
class Config:
    ticks: int = 30
    seed: Optional[int] = None
    realtime: bool = False
    tick_seconds: float = 2.0   # simulated spacing between readings

    # Start conditions
    temperature: float = 24.5
    humidity: float = 55.0
    mold_index: float = 10.0

    # Thresholds
    max_humidity: float = 65.0
    hysteresis: float = 5.0

    # Manual mode
    manual: bool = False
    ventilation: bool = False
    drying: bool = False
    sterilization: bool = False


class SimClock:
    """Advances by a fixed step per call so readings are evenly spaced."""

    def __init__(self, start: datetime, step_s: float) -> None:
        self._t = start
        self._step = timedelta(seconds=step_s)

    def __call__(self) -> datetime:
        self._t += self._step
        return self._t


# ---------------------------------------------------------------------------
# Main loop
# ---------------------------------------------------------------------------

def build(cfg: Config) -> ControlLoopService:
    clock = SimClock(datetime.now(timezone.utc), cfg.tick_seconds)
    simulator = EnvironmentSimulator(HistoryBuffer(50), rng=random.Random(cfg.seed), clock=clock)
    gate = ActuatorGate(mode=ControlMode.MANUAL if cfg.manual else ControlMode.AUTOMATIC, clock=clock)

    if cfg.manual:
        for actuator in Actuator:
            if getattr(cfg, actuator.value):
                gate.toggle(actuator)

    return ControlLoopService(
        simulator=simulator,
        controller=AutomationController(humidity_hysteresis=cfg.hysteresis),
        gate=gate,
        initial=SensorReading(
            ts_utc=clock(),
            temperature=cfg.temperature,
            humidity=cfg.humidity,
            mold_index=cfg.mold_index,
        ),
        thresholds=Thresholds(max_humidity_percent=cfg.max_humidity),
        tick_seconds=cfg.tick_seconds,
    )


def run(cfg: Config) -> ControlLoopService:
    log = logging.getLogger("closet_sim")
    svc = build(cfg)

    log.info("Starting closet simulation")
    log.info("  Ticks:      %d (seed=%s)", cfg.ticks, cfg.seed)
    log.info("  Start:      temp=%.1f hum=%.1f mold=%.1f", cfg.temperature, cfg.humidity, cfg.mold_index)
    log.info("  Thresholds: max_humidity=%g  hysteresis=%g", cfg.max_humidity, cfg.hysteresis)
    log.info("  Mode:       %s", "manual" if cfg.manual else "automatic")

    try:
        for i in range(1, cfg.ticks + 1):
            r = svc.tick_once()
            a = svc.snapshot().actuators
            log.info(
                "[%03d] temp=%.2f  hum=%5.1f  mold=%5.1f  fan=%s dryer=%s uv=%s",
                i, r.temperature, r.humidity, r.mold_index,
                "ON" if a.ventilation else "off",
                "ON" if a.drying else "off",
                "ON" if a.sterilization else "off",
            )
            if cfg.realtime:
                time.sleep(cfg.tick_seconds)
    except KeyboardInterrupt:
        log.info("Interrupted")

    log.info("Done: %d readings in history, %d actuator changes", len(svc.history()), len(svc.actions()))
    return svc


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def main(argv: Optional[Sequence[str]] = None) -> ControlLoopService:
    p = argparse.ArgumentParser(description="Headless wardrobe climate simulation")

    p.add_argument("--ticks", type=int, default=30, help="Number of ticks to run (default: 30)")
    p.add_argument("--seed", type=int, default=None, help="Random seed for reproducible drift")
    p.add_argument("--realtime", action="store_true", help="Sleep one tick period between ticks")
    p.add_argument("--tick-seconds", type=float, default=2.0)

    p.add_argument("--temperature", type=float, default=24.5, help="Start temperature (°C)")
    p.add_argument("--humidity", type=float, default=55.0, help="Start humidity (%%)")
    p.add_argument("--mold-index", type=float, default=10.0, help="Start mold index (0-100)")

    p.add_argument("--max-humidity", type=float, default=65.0, help="Above this → fan + dryer ON")
    p.add_argument("--hysteresis", type=float, default=5.0, help="Dead band below max humidity")

    p.add_argument("--manual", action="store_true", help="Disable automation")
    p.add_argument("--ventilation", action="store_true", help="Fan on (manual mode only)")
    p.add_argument("--drying", action="store_true", help="Dehumidifier on (manual mode only)")
    p.add_argument("--sterilization", action="store_true", help="UV lamp on (manual mode only)")

    p.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    args = p.parse_args(argv)

    if not args.manual and (args.ventilation or args.drying or args.sterilization):
        p.error("actuator flags require --manual")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)-5s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    cfg = Config(
        ticks=args.ticks,
        seed=args.seed,
        realtime=args.realtime,
        tick_seconds=args.tick_seconds,
        temperature=args.temperature,
        humidity=args.humidity,
        mold_index=args.mold_index,
        max_humidity=args.max_humidity,
        hysteresis=args.hysteresis,
        manual=args.manual,
        ventilation=args.ventilation,
        drying=args.drying,
        sterilization=args.sterilization,
    )

    return run(cfg)


if __name__ == "__main__":
    main()
