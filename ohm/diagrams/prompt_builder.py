#===========================================================================
# ohm/diagrams/prompt_builder.py
# Text-to-image prompt for Fritzing-style breadboard diagrams, plus the
# reference image library used to pin the style per circuit complexity.
#===========================================================================

from __future__ import annotations

from typing import Any, Dict, List, Tuple, TypedDict

from ohm.config import settings
from ohm.diagrams.circuit import (
    CircuitComponent,
    CircuitConnection,
    parse_circuit,
    select_reference_type,
)


class ReferenceImage(TypedDict):
    name: str
    url: str
    description: str
    component_count: int


def _ref_url(filename: str) -> str:
    return f"{settings.DIAGRAM_REFERENCE_BASE_URL}/{filename}"


FRITZING_REFERENCES: Dict[str, ReferenceImage] = {
    "simple": {
        "name": "Simple LED Circuit",
        "url": _ref_url("led-blink.png"),
        "description": "Arduino Uno + LED + 220Ω Resistor - Basic blink circuit",
        "component_count": 3,
    },
    "moderate": {
        "name": "Sensor Circuit",
        "url": _ref_url("dht11-sensor.png"),
        "description": "Arduino Uno + DHT11 Temperature Sensor + LCD Display",
        "component_count": 5,
    },
    "complex": {
        "name": "Multi-Component Circuit",
        "url": _ref_url("servo-ultrasonic.png"),
        "description": "Arduino Uno + Servo Motor + Ultrasonic Sensor + LEDs + Buzzer",
        "component_count": 8,
    },
}


def get_reference_image(reference_type: str) -> ReferenceImage:
    return FRITZING_REFERENCES.get(reference_type) or FRITZING_REFERENCES["simple"]


def get_all_references() -> List[ReferenceImage]:
    return list(FRITZING_REFERENCES.values())


# --- Formatting ------------------------------------------------------------

def format_components(components: List[CircuitComponent]) -> str:
    if not components:
        return "No components specified"
    lines = []
    for i, c in enumerate(components, start=1):
        props = ", ".join(f"{k}: {v}" for k, v in (c.properties or {}).items())
        lines.append(f"{i}. {c.type} (ID: {c.id})" + (f" - {props}" if props else ""))
    return "\n".join(lines)


def format_connections(connections: List[CircuitConnection]) -> str:
    if not connections:
        return "No connections specified"
    lines = []
    for i, conn in enumerate(connections, start=1):
        wire = (conn.color or "any color").upper()
        lines.append(f"{i}. {wire} wire from {conn.from_} to {conn.to}")
    return "\n".join(lines)


_STYLE = """\
EXACT STYLE TO MATCH:
- Reference Fritzing example ({ref_name}: {ref_desc})
- Realistic breadboard with visible hole grid pattern (tan/beige color)
- Proper component graphics (Arduino boards, LEDs, resistors, sensors)
- Color-coded jumper wires: Red=5V, Black=GND, Yellow/Green=Signal
- Clean, organized layout with good spacing between components
- Professional quality suitable for electronics tutorials and documentation"""

_LAYOUT = """\
LAYOUT REQUIREMENTS:
- Arduino/main board positioned at top-left of breadboard
- Power rails clearly visible on breadboard sides (red stripe=positive, blue stripe=negative)
- Components arranged left-to-right in logical signal flow order
- Wires should follow breadboard rows/columns, minimize crossing
- Clear spacing between components (at least 2-3 breadboard holes)
- All component labels clearly readable and properly positioned
- Wire routing should be neat and follow breadboard grid

COMPONENT PLACEMENT RULES:
- Arduino board: Top-left, straddling center divide of breadboard
- Power components (voltage regulators, capacitors): Near power rails
- Input components (buttons, sensors): Left side of breadboard
- Output components (LEDs, displays, motors): Right side of breadboard
- Resistors: Inline with components they protect

OUTPUT REQUIREMENTS:
- High resolution (1792x1024px minimum)
- Good lighting, no shadows or reflections
- All text labels clearly legible at full resolution
- Professional presentation quality matching reference images exactly
- Breadboard should be tan/beige color with white text markings
- Components should have realistic 3D appearance with proper shadows
- Wire colors must match the specified connection colors exactly
- Include component value labels (resistor values, LED colors, etc.)

STYLE NOTES:
- This should look indistinguishable from an actual Fritzing export
- Pay attention to component orientation (LED polarity, IC pin 1, etc.)
- Breadboard holes should be clearly visible in a regular grid pattern
- Power rails should have red and blue stripes running the length of the board"""


def build_fritzing_prompt(raw_circuit: Any) -> Tuple[str, str]:
    """
    Returns (prompt, reference_type). reference_type is simple (<=3 parts),
    moderate (<=6) or complex.
    """
    circuit = parse_circuit(raw_circuit)
    reference_type = select_reference_type(len(circuit.components))
    ref = get_reference_image(reference_type)

    prompt = "\n\n".join([
        "Generate a professional breadboard circuit diagram in Fritzing style.",
        _STYLE.format(ref_name=ref["name"], ref_desc=ref["description"]),
        "CIRCUIT SPECIFICATIONS:\n" + format_components(circuit.components),
        "WIRING CONNECTIONS:\n" + format_connections(circuit.connections),
        _LAYOUT,
    ])
    return prompt, reference_type
