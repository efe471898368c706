"""Error taxonomy shared by the import pipeline and the API layer."""
from typing import Optional


class PlantTrackerError(Exception):
    """Base class for all errors raised by plant_tracker."""


class MissingInput(PlantTrackerError):
    """A required identifier or location filter was not supplied."""


class FetchFailed(PlantTrackerError):
    """The observation service could not be reached or answered with an error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class InvalidImportData(PlantTrackerError):
    """A backup payload was unparsable or not a list of plant objects."""


class NoSelection(PlantTrackerError):
    """An import was requested with no observations selected."""


class PartialImportError(PlantTrackerError):
    """Establishment-means lookup failed for one taxon.

    Never raised out of the import; collected on the result so the caller
    can report which observations fell back to default classification.
    """

    def __init__(self, taxon_id: Optional[int], observation_ids: list[str], cause: str):
        super().__init__(f"establishment means lookup failed for taxon {taxon_id}: {cause}")
        self.taxon_id = taxon_id
        self.observation_ids = observation_ids
        self.cause = cause
