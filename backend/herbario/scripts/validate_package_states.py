#!/usr/bin/env python3
"""
Validation script for stored package states.

Compares every paquete.estado with the state derived from the current
classification of its samples. Exits non-zero when any package drifted,
unless --fix rewrote them.
"""
import argparse
import sys
from typing import List, Tuple

from sqlalchemy.orm import Session

from herbario.database import SessionLocal
from herbario.models import Paquete, PackageState
from herbario.services.package_state import (
    fetch_sample_states, refresh_package_state, state_from_tally, tally_classification_states,
)


def find_drifted_packages(db: Session) -> List[Tuple[Paquete, PackageState]]:
    """Return (package, derived state) for every package whose stored state is stale."""
    drifted = []
    for paquete in db.query(Paquete).order_by(Paquete.id).all():
        tally = tally_classification_states(fetch_sample_states(db, paquete.id))
        derived = state_from_tally(tally)
        if PackageState(paquete.estado) != derived:
            drifted.append((paquete, derived))
    return drifted


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Check stored package states against their samples")
    parser.add_argument("--fix", action="store_true", help="rewrite drifted packages with the derived state")
    args = parser.parse_args(argv)

    print("=" * 60)
    print("Package State Validation")
    print("=" * 60)

    db = SessionLocal()
    try:
        total = db.query(Paquete).count()
        drifted = find_drifted_packages(db)

        for paquete, derived in drifted:
            stored = PackageState(paquete.estado).value
            print(f"   ✗ Package {paquete.id} ({paquete.num_paquete}): stored '{stored}', derived '{derived.value}'")

        if drifted and args.fix:
            for paquete, _ in drifted:
                refresh_package_state(db, paquete.id)
            print(f"\n✓ Fixed {len(drifted)} package(s)")
            return 0

        print(f"\nChecked {total} package(s), {len(drifted)} drifted")
        if drifted:
            print("✗ SOME PACKAGES DRIFTED - run with --fix to repair")
            return 1
        print("✓ ALL PACKAGE STATES CONSISTENT")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
