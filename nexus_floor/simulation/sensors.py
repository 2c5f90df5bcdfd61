"""
Sensor Data Generator.

Synthesises per-tick readings for configured equipment nodes. Readings hover
around 80% of the node's threshold; every 8th tick forces a spike above it so
a running demo always produces alerts.
"""

import math
import random
from typing import Dict, Iterable, Optional, Tuple

from nexus_floor.models.simulation import SensorData, SensorDisplay, SensorStatus
from nexus_floor.models.workflow import EquipmentConfig, Node, Operator
from nexus_floor.workflow.graph import configured_equipment_nodes, sensor_key

SPIKE_EVERY_N_TICKS = 8
BASELINE_RATIO = 0.8
WARNING_PROGRESS_PCT = 80


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _spike_value(threshold: float, rng: random.Random) -> float:
    value = round(threshold + abs(threshold) * (0.1 + rng.random() * 0.2), 2)
    if value <= threshold:
        # Rounding (or a non-positive threshold) ate the margin
        value = round(threshold + 0.01, 2)
    return value


def _baseline_value(threshold: float, tick: int, rng: random.Random) -> float:
    noise = (rng.random() - 0.5) * threshold * 0.2
    oscillation = math.sin(tick * 0.3) * threshold * 0.15
    return round(threshold * BASELINE_RATIO + noise + oscillation, 2)


def progress_pct(value: float, threshold: float) -> int:
    if threshold <= 0:
        return 0
    return max(0, min(100, _round_half_up(value / threshold * 100)))


def display_status(value: float, threshold: float) -> SensorStatus:
    if value > threshold:
        return SensorStatus.ALERT
    if progress_pct(value, threshold) > WARNING_PROGRESS_PCT:
        return SensorStatus.WARNING
    return SensorStatus.NORMAL


def generate_sensor_data(
    nodes: Iterable[Node],
    tick: int,
    rng: Optional[random.Random] = None,
) -> SensorData:
    """Produce one tick of readings plus their display rows."""
    rng = rng or random.Random()
    data = SensorData()

    for node in configured_equipment_nodes(nodes):
        config: EquipmentConfig = node.config
        threshold = config.threshold
        key = sensor_key(node)

        if tick % SPIKE_EVERY_N_TICKS == 0:
            value = _spike_value(threshold, rng)
        else:
            value = _baseline_value(threshold, tick, rng)

        data.values[key] = value
        data.node_values[node.id] = value
        status = display_status(value, threshold)
        data.display.append(SensorDisplay(
            key=config.sensor_type,
            sensor_key=key,
            node_id=node.id,
            value=value,
            threshold=threshold,
            equipment=node.label or config.equipment_id or node.id,
            is_alert=status == SensorStatus.ALERT,
            progress_pct=progress_pct(value, threshold),
            status=status,
        ))

    return data


def generate_reading(
    sensor_type: str,
    value_range: Tuple[float, float],
    anomaly: Optional[str] = None,
    tick: int = 0,
    rng: Optional[random.Random] = None,
) -> float:
    """
    Single reading within a normal range, optionally with an injected anomaly:
    spike (above max), drift (creeping upward), oscillation, flatline.
    """
    rng = rng or random.Random()
    low, high = value_range
    mid = (low + high) / 2
    span = high - low

    if anomaly == "spike":
        value = high + rng.random() * span * 0.5
    elif anomaly == "drift":
        value = mid + math.fmod(tick * 0.1, span) if span else mid
    elif anomaly == "oscillation":
        value = mid + math.sin(tick) * span * 0.8
    elif anomaly == "flatline":
        value = mid
    else:
        value = mid + (rng.random() - 0.5) * span * 0.6

    return round(value, 2)


def get_value_status(
    value: float, threshold: float, warning_ratio: float = 0.8
) -> SensorStatus:
    if value >= threshold:
        return SensorStatus.ALERT
    if value >= threshold * warning_ratio:
        return SensorStatus.WARNING
    return SensorStatus.NORMAL


def generate_mock_sensor_data(
    nodes: Iterable[Node],
    rng: Optional[random.Random] = None,
) -> Dict[str, float]:
    """
    Test-run data: each equipment node gets a value that trips its operator
    about half the time.
    """
    rng = rng or random.Random()
    mock: Dict[str, float] = {}

    for node in nodes:
        if node.is_action or not isinstance(node.config, EquipmentConfig):
            continue
        config = node.config
        threshold = config.threshold
        above = config.operator in (Operator.GT, Operator.GTE)
        below = config.operator in (Operator.LT, Operator.LTE)

        if rng.random() > 0.5:
            if above:
                value = threshold + rng.random() * 20 + 5
            elif below:
                value = threshold - rng.random() * 20 - 5
            else:
                value = threshold
        elif above:
            value = threshold - rng.random() * 20 - 5
        else:
            value = threshold + rng.random() * 20 + 5

        mock[sensor_key(node)] = round(value, 2)

    return mock
