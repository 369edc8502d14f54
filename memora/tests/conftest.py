"""Shared fixtures for Memora tests."""

import pytest

from memora.common.schemas import Entity, MemoryCategory, MemoryRecord


def build_record(
    id: str,
    title: str = "",
    summary: str = "",
    original_text: str = "",
    category: MemoryCategory = MemoryCategory.OTHER,
    entities=None,
    embedding=None,
    importance: int = 5,
    timestamp: int = 1_700_000_000_000,
) -> MemoryRecord:
    return MemoryRecord(
        id=id,
        title=title,
        summary=summary,
        original_text=original_text,
        category=category,
        entities=[Entity(name=n, type=t) for n, t in (entities or [])],
        embedding=embedding,
        importance=importance,
        timestamp=timestamp,
    )


@pytest.fixture
def make_record():
    return build_record


@pytest.fixture
def birthday_record():
    return build_record(
        "r-birthday",
        title="Alice's Birthday",
        summary="Birthday celebration on June 12",
        original_text="Alice turns 30 on June 12, party at her place",
        category=MemoryCategory.PERSONAL,
        entities=[("Alice", "Person"), ("June 12", "Date")],
    )


@pytest.fixture
def lease_record():
    return build_record(
        "r-lease",
        title="Apartment lease renewal",
        summary="Lease for the apartment renews in March",
        original_text="Landlord sent the renewal contract for the apartment",
        category=MemoryCategory.FINANCE,
        entities=[("Landlord", "Person")],
    )


@pytest.fixture
def flight_record():
    return build_record(
        "r-flight",
        title="Flight to Lisbon",
        summary="TAP flight TP1234 departs from gate B12",
        original_text="Flight to Lisbon on Friday, boarding at 9am",
        category=MemoryCategory.PERSONAL,
        entities=[("Lisbon", "Location")],
    )
