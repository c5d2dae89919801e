# ohm/diagrams/circuit.py
from __future__ import annotations
import hashlib
import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class CircuitComponent(BaseModel):
    id: str = Field(..., description="Unique component id within the circuit, e.g. 'led1'")
    type: str = Field(..., description="Part type, e.g. 'Arduino Uno', 'LED', 'Resistor'")
    properties: Optional[Dict[str, Any]] = Field(None, description="Free-form part values (resistance, color, ...)")
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    @field_validator("id", "type")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not str(v).strip():
            raise ValueError("must not be empty")
        return v


class CircuitConnection(BaseModel):
    from_: str = Field(..., alias="from", description="Source pin, e.g. 'arduino.D13'")
    to: str = Field(..., description="Target pin, e.g. 'led1.anode'")
    color: Optional[str] = Field(None, description="Jumper wire color")
    model_config = ConfigDict(extra="allow", populate_by_name=True, coerce_numbers_to_str=True)

    @field_validator("from_", "to")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not str(v).strip():
            raise ValueError("must not be empty")
        return v


class CircuitJson(BaseModel):
    components: List[CircuitComponent]
    connections: List[CircuitConnection]
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)


def parse_circuit(raw: Any) -> CircuitJson:
    """Validate raw circuit JSON; raises pydantic.ValidationError."""
    if isinstance(raw, CircuitJson):
        return raw
    return CircuitJson.model_validate(raw)


def validate_circuit_json(raw: Any) -> bool:
    try:
        parse_circuit(raw)
    except ValidationError:
        return False
    return True


def circuit_errors(raw: Any) -> List[Dict[str, str]]:
    """Field-level problems as [{field, message}], empty when the circuit is valid."""
    try:
        parse_circuit(raw)
    except ValidationError as e:
        out: List[Dict[str, str]] = []
        for err in e.errors():
            loc = ".".join("from" if p == "from_" else str(p) for p in err.get("loc", ()))
            out.append({"field": loc or "circuitJson", "message": err.get("msg", "invalid")})
        return out
    return []


def circuit_to_dict(circuit: CircuitJson) -> Dict[str, Any]:
    return circuit.model_dump(by_alias=True, exclude_none=True)


def hash_circuit(raw: Any) -> str:
    """
    MD5 over a normalized view of the circuit.
    Same parts and wiring give the same hash regardless of list order.
    """
    circuit = parse_circuit(raw)
    normalized = {
        "components": sorted(
            (
                {"id": c.id, "type": c.type, "properties": c.properties or {}}
                for c in circuit.components
            ),
            key=lambda c: c["id"],
        ),
        "connections": sorted(
            (
                {"from": c.from_, "to": c.to, "color": c.color or "default"}
                for c in circuit.connections
            ),
            key=lambda c: f"{c['from']}-{c['to']}",
        ),
    }
    text = json.dumps(normalized, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def are_circuits_equivalent(a: Any, b: Any) -> bool:
    return hash_circuit(a) == hash_circuit(b)


def select_reference_type(component_count: int) -> str:
    if component_count <= 3:
        return "simple"
    if component_count <= 6:
        return "moderate"
    return "complex"


def get_circuit_complexity(raw: Any) -> Dict[str, Any]:
    circuit = parse_circuit(raw)
    return {
        "level": select_reference_type(len(circuit.components)),
        "component_count": len(circuit.components),
        "connection_count": len(circuit.connections),
    }
