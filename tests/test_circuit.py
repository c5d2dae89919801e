import pytest
from pydantic import ValidationError

from ohm.diagrams.circuit import (
    are_circuits_equivalent,
    circuit_errors,
    get_circuit_complexity,
    hash_circuit,
    parse_circuit,
    validate_circuit_json,
)
from ohm.diagrams.prompt_builder import build_fritzing_prompt, format_components, format_connections

from conftest import make_circuit

BLINK = {
    "components": [
        {"id": "uno", "type": "Arduino Uno"},
        {"id": "r1", "type": "Resistor", "properties": {"resistance": "220Ω"}},
        {"id": "led1", "type": "LED", "properties": {"color": "red"}},
    ],
    "connections": [
        {"from": "uno.D13", "to": "r1.1", "color": "yellow"},
        {"from": "r1.2", "to": "led1.anode"},
        {"from": "led1.cathode", "to": "uno.GND", "color": "black"},
    ],
}


def test_valid_circuit_parses():
    circuit = parse_circuit(BLINK)
    assert [c.id for c in circuit.components] == ["uno", "r1", "led1"]
    assert circuit.connections[0].from_ == "uno.D13"
    assert validate_circuit_json(BLINK)
    assert circuit_errors(BLINK) == []


@pytest.mark.parametrize("bad", [
    None,
    "not a circuit",
    {"components": []},
    {"components": {}, "connections": []},
    {"components": [{"type": "LED"}], "connections": []},
    {"components": [{"id": "", "type": "LED"}], "connections": []},
    {"components": [], "connections": [{"from": "a"}]},
])
def test_invalid_circuits_rejected(bad):
    assert not validate_circuit_json(bad)
    assert circuit_errors(bad)


def test_errors_name_the_field():
    errors = circuit_errors({"components": [{"id": "x"}], "connections": [{"to": "b"}]})
    fields = {e["field"] for e in errors}
    assert "components.0.type" in fields
    assert "connections.0.from" in fields


def test_numeric_ids_are_accepted():
    circuit = parse_circuit({"components": [{"id": 1, "type": "LED"}], "connections": []})
    assert circuit.components[0].id == "1"


def test_hash_ignores_ordering():
    shuffled = {
        "components": list(reversed(BLINK["components"])),
        "connections": [BLINK["connections"][2], BLINK["connections"][0], BLINK["connections"][1]],
    }
    assert hash_circuit(BLINK) == hash_circuit(shuffled)
    assert are_circuits_equivalent(BLINK, shuffled)


def test_hash_changes_with_wiring():
    recolored = {
        "components": BLINK["components"],
        "connections": [dict(BLINK["connections"][0], color="green")] + BLINK["connections"][1:],
    }
    assert hash_circuit(BLINK) != hash_circuit(recolored)
    assert len(hash_circuit(BLINK)) == 32


def test_missing_color_hashes_like_default():
    a = {"components": [], "connections": [{"from": "a", "to": "b"}]}
    b = {"components": [], "connections": [{"from": "a", "to": "b", "color": "default"}]}
    assert hash_circuit(a) == hash_circuit(b)


@pytest.mark.parametrize("n,level", [(1, "simple"), (3, "simple"), (4, "moderate"), (6, "moderate"), (7, "complex")])
def test_complexity_thresholds(n, level):
    info = get_circuit_complexity(make_circuit(n))
    assert info["level"] == level
    assert info["component_count"] == n
    assert info["connection_count"] == n - 1
    _, reference_type = build_fritzing_prompt(make_circuit(n))
    assert reference_type == level


def test_prompt_lists_parts_and_wires():
    prompt, reference_type = build_fritzing_prompt(BLINK)
    assert reference_type == "simple"
    assert "1. Arduino Uno (ID: uno)" in prompt
    assert "2. Resistor (ID: r1) - resistance: 220Ω" in prompt
    assert "1. YELLOW wire from uno.D13 to r1.1" in prompt
    assert "2. ANY COLOR wire from r1.2 to led1.anode" in prompt
    assert "Fritzing" in prompt


def test_prompt_carries_full_style_brief():
    prompt, _ = build_fritzing_prompt(BLINK)
    for line in (
        "- Wire routing should be neat and follow breadboard grid",
        "- Good lighting, no shadows or reflections",
        "- Breadboard should be tan/beige color with white text markings",
        "- Components should have realistic 3D appearance with proper shadows",
        "- Breadboard holes should be clearly visible in a regular grid pattern",
    ):
        assert line in prompt


def test_empty_lists_are_spelled_out():
    assert format_components([]) == "No components specified"
    assert format_connections([]) == "No connections specified"
