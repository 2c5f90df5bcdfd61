"""
Equipment catalog: node categories, the plant's equipment list and the
sensors each equipment type exposes.
"""

from typing import List, Optional, Tuple

from pydantic import BaseModel


class CategoryInfo(BaseModel):
    key: str
    name: str
    kind: str                               # "equipment" or "action"


class SensorSpec(BaseModel):
    id: str
    name: str
    unit: str
    range: Tuple[float, float]              # Normal operating range


class EquipmentInfo(BaseModel):
    id: str
    name: str                               # Scene object name
    type: str
    label: str
    sensors: List[SensorSpec] = []


CATEGORIES: List[CategoryInfo] = [
    CategoryInfo(key="analyzer", name="Analyzers", kind="equipment"),
    CategoryInfo(key="robot", name="Robots", kind="equipment"),
    CategoryInfo(key="centrifuge", name="Centrifuges", kind="equipment"),
    CategoryInfo(key="storage", name="Storage", kind="equipment"),
    CategoryInfo(key="conveyor", name="Conveyors", kind="equipment"),
    CategoryInfo(key="whatsapp", name="WhatsApp", kind="action"),
    CategoryInfo(key="email", name="Email", kind="action"),
    CategoryInfo(key="alert", name="System Alert", kind="action"),
    CategoryInfo(key="webhook", name="Webhook", kind="action"),
]

_EQUIPMENT = [
    ("1", "Centrifuge_01", "centrifuge", "Centrifuge 01"),
    ("2", "Centrifuge_02", "centrifuge", "Centrifuge 02"),
    ("3", "Analyzer_Chemical_01", "analyzer", "Chemical Analyzer 01"),
    ("4", "Analyzer_Spectral_01", "analyzer", "Spectral Analyzer 01"),
    ("5", "Cartesian_Robot_01", "robot", "Cartesian Robot 01"),
    ("6", "Cartesian_Robot_02", "robot", "Cartesian Robot 02"),
    ("7", "Storage_Tank_01", "storage", "Storage Tank 01"),
    ("8", "Storage_Tank_02", "storage", "Storage Tank 02"),
    ("9", "Conveyor_Main", "conveyor", "Main Conveyor"),
    ("10", "Conveyor_Secondary", "conveyor", "Secondary Conveyor"),
    ("11", "Mixer_01", "mixer", "Mixer 01"),
    ("12", "Pump_01", "pump", "Pump 01"),
]

_SENSORS = {
    "analyzer": [
        ("temp", "Temperature", "°C", (15, 30)),
        ("ph", "pH Level", "pH", (6.5, 7.5)),
        ("turbidity", "Turbidity", "NTU", (0, 5)),
    ],
    "robot": [
        ("x_pos", "X Position", "mm", (0, 2000)),
        ("y_pos", "Y Position", "mm", (0, 1500)),
        ("vibration", "Vibration", "mm/s", (0, 5)),
        ("current", "Motor Current", "A", (0.5, 2.0)),
    ],
    "centrifuge": [
        ("rpm", "RPM", "RPM", (3000, 5000)),
        ("vibration", "Vibration", "mm/s", (0, 3)),
        ("temp", "Temperature", "°C", (20, 35)),
    ],
    "storage": [
        ("level", "Fill Level", "%", (20, 90)),
        ("temp", "Temperature", "°C", (15, 25)),
        ("humidity", "Humidity", "%RH", (30, 60)),
    ],
    "conveyor": [
        ("speed", "Belt Speed", "m/min", (5, 30)),
        ("current", "Motor Current", "A", (1, 3)),
        ("vibration", "Vibration", "mm/s", (0, 2)),
    ],
    "mixer": [
        ("rpm", "RPM", "RPM", (50, 500)),
        ("temp", "Temperature", "°C", (20, 80)),
        ("torque", "Torque", "Nm", (0, 100)),
    ],
    "pump": [
        ("flow", "Flow Rate", "L/min", (0, 100)),
        ("pressure", "Pressure", "bar", (0, 10)),
        ("current", "Motor Current", "A", (0.5, 5)),
    ],
}

_DEFAULT_SENSORS = [("temp", "Temperature", "°C", (0, 100))]

# Checked in order; first substring hit wins
_NAME_PATTERNS = [
    ("analyzer", "analyzer"),
    ("cartesian", "robot"),
    ("centrifuge", "centrifuge"),
    ("storage", "storage"),
    ("conveyor", "conveyor"),
    ("mixer", "mixer"),
    ("pump", "pump"),
]


def get_category(key: str) -> Optional[CategoryInfo]:
    return next((c for c in CATEGORIES if c.key == key), None)


def get_categories(kind: Optional[str] = None) -> List[CategoryInfo]:
    if kind is None:
        return list(CATEGORIES)
    return [c for c in CATEGORIES if c.kind == kind]


def get_sensors_for_type(equipment_type: str) -> List[SensorSpec]:
    """Sensor definitions for an equipment type; unknown types get a thermometer."""
    rows = _SENSORS.get(equipment_type, _DEFAULT_SENSORS)
    return [SensorSpec(id=i, name=n, unit=u, range=r) for i, n, u, r in rows]


def classify_equipment(name: str) -> str:
    """Guess an equipment type from a scene object name."""
    lowered = name.lower()
    for pattern, equipment_type in _NAME_PATTERNS:
        if pattern in lowered:
            return equipment_type
    return "unknown"


def load_equipment() -> List[EquipmentInfo]:
    return [
        EquipmentInfo(
            id=eid,
            name=name,
            type=etype,
            label=label,
            sensors=get_sensors_for_type(etype),
        )
        for eid, name, etype, label in _EQUIPMENT
    ]
