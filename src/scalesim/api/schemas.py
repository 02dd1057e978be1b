# src/scalesim/api/schemas.py
"""
Pydantic response schemas for the API.
Keeps API-specific response shapes separate from internal domain models.
"""

from typing import Dict, List

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str = Field(..., description="Health status of the API.")
    version: str = Field(..., description="Current application version.")


class VersionResponse(BaseModel):
    """Response schema for the version endpoint."""

    version: str = Field(..., description="Current application version.")


class UnitAssignment(BaseModel):
    """The workload currently assigned to one capacity unit."""

    unit_name: str = Field(..., description="Name of the capacity unit (node).")
    pool: str | None = Field(None, description="Worker pool the unit belongs to.")
    zone: str | None = Field(None, description="Zone of the unit.")
    workload: List[str] = Field(default_factory=list, description="Names of the workload units assigned to it.")


class AssignmentsResponse(BaseModel):
    """Unit-to-workload assignment snapshot of the cluster."""

    assignments: List[UnitAssignment] = Field(default_factory=list)
    unscheduled: List[str] = Field(default_factory=list, description="Workload units without an assigned unit.")


class ScaleUpResponse(BaseModel):
    """Result of a scale-up recommendation run."""

    recommendation: Dict[str, int] = Field(default_factory=dict, description="'pool/zone' to number of units to add.")
    termination: str = Field(..., description="Why the run stopped.")
    rounds: int = Field(0, description="Number of trial rounds that were run.")
    remaining_unscheduled: int = Field(0, description="Workload units still unscheduled at the end of the run.")
    estimated_hourly_cost: float = Field(0.0, description="Hourly price of the recommended units.")


class ScaleDownResponse(BaseModel):
    """Result of a scale-down recommendation run."""

    removable: List[str] = Field(default_factory=list, description="Units that can be removed, in test order.")
    essential: List[str] = Field(default_factory=list, description="Units that must be kept.")
    skipped: List[str] = Field(default_factory=list, description="Pre-existing units that were not considered.")
