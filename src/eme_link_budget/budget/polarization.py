from __future__ import annotations

"""
polarization.py
===============
Contract of the polarization service consumed by the link budget.

The ionospheric (Faraday) and spatial rotation model lives outside this
package. Anything with a matching ``calculate(params, geometry)`` method can
be plugged into ``LinkBudget``; ``IdealPolarization`` stands in when none is
given. A service that cannot produce a result returns
``polarization_failure()``: PLF 0 and a 999 dB loss, which the budget treats
as a huge loss rather than an error.
"""

from typing import Protocol

from eme_link_budget.link_core.model import (
    GeometryResults,
    LinkBudgetParameters,
    PolarizationResults,
)

FAILURE_LOSS_DB = 999.0


class PolarizationService(Protocol):
    """Maps (parameters, geometry) to the polarization part of the budget."""

    def calculate(
        self, params: LinkBudgetParameters, geometry: GeometryResults
    ) -> PolarizationResults: ...


def polarization_failure() -> PolarizationResults:
    return PolarizationResults(
        plf=0.0, polarization_loss_db=FAILURE_LOSS_DB, polarization_efficiency_percent=0.0
    )


def is_failure(result: PolarizationResults) -> bool:
    return result.plf == 0.0 and result.polarization_loss_db >= FAILURE_LOSS_DB


class IdealPolarization:
    """Perfectly matched antennas: no rotation, PLF 1, no loss."""

    def calculate(
        self, params: LinkBudgetParameters, geometry: GeometryResults
    ) -> PolarizationResults:
        return PolarizationResults()


__all__ = [
    "PolarizationService",
    "IdealPolarization",
    "polarization_failure",
    "is_failure",
    "FAILURE_LOSS_DB",
]
