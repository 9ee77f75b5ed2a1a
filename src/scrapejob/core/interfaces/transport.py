"""TransportPort: hexagonal port for the remote scrape job service.

All operations are async and return tagged results instead of raising, so
the controller can reconcile every outcome into a state transition.
"""
from __future__ import annotations

from abc import ABC, abstractmethod

from scrapejob.core.models.job import JobId, JobRequest, JobStatus
from scrapejob.core.models.result import Result


class TransportPort(ABC):
	"""Port abstraction for submitting, inspecting and cancelling remote jobs."""

	@abstractmethod
	async def submit(self, request: JobRequest) -> Result[JobId]:
		"""Submit a new job and return its identifier."""
		raise NotImplementedError

	@abstractmethod
	async def fetch_status(self, job_id: JobId) -> Result[JobStatus]:
		"""Return the latest status snapshot of a job."""
		raise NotImplementedError

	@abstractmethod
	async def cancel(self, job_id: JobId) -> Result[None]:
		"""Ask the remote service to cancel a job."""
		raise NotImplementedError
