"""
Static reference data for the driver form.

Hospitals are grouped by the location a driver reports from.  The data
is hard-coded rather than stored so that validating a submission never
needs a database round trip.
"""
from __future__ import annotations

from typing import NamedTuple, Optional


class Hospital(NamedTuple):
    id: str
    name: str


HOSPITALS_BY_LOCATION: dict[str, list[Hospital]] = {
    'Banashankari': [
        Hospital('550e8400-e29b-41d4-a716-446655440000', 'Sagar Hospitals'),
        Hospital('550e8400-e29b-41d4-a716-446655440001', 'Fortis Hospital'),
    ],
}

INCIDENT_TYPES: list[tuple[str, str]] = [
    ('accident', 'Accident'),
    ('fire', 'Fire'),
    ('natural_disaster', 'Natural Disaster'),
    ('medical', 'Medical Emergency'),
]

CONSCIOUSNESS_STATES: list[tuple[str, str]] = [
    ('conscious', 'Conscious'),
    ('semi_conscious', 'Semi-Conscious'),
    ('unconscious', 'Unconscious'),
]


def locations() -> list[str]:
    return list(HOSPITALS_BY_LOCATION)


def hospitals_for(location: str) -> list[Hospital]:
    """Return the ordered hospital set for ``location`` (empty if unknown)."""
    return list(HOSPITALS_BY_LOCATION.get(location, []))


def find_hospital(location: str, hospital: str) -> Optional[Hospital]:
    """Look up a hospital of ``location`` by id, or by name as a convenience."""
    for h in hospitals_for(location):
        if hospital in (h.id, h.name):
            return h
    return None


def as_payload() -> dict:
    return {
        'locations': [
            {'name': loc, 'hospitals': [h._asdict() for h in hospitals_for(loc)]}
            for loc in locations()
        ],
        'incidentTypes': [{'id': k, 'name': v} for k, v in INCIDENT_TYPES],
        'consciousnessStates': [{'id': k, 'name': v} for k, v in CONSCIOUSNESS_STATES],
    }
