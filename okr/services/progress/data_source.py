"""
Abstract data source for progress computations.

Defines the reads and writes the progress pipelines need from whatever
storage backend holds plans, key results, check-ins and tasks. The backend
converts its rows into typed snapshots before returning them. No concrete
source ships here: a host service implements this port and drives it through
load_key_result_progress_pipeline and record_check_in_pipeline.

Example:
    class SupabaseProgressSource(ProgressDataSource):
        async def get_key_result(self, key_result_id):
            row = await self._client.table("annual_krs")...
            return KeyResult(**row)
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from okr.schemas.progress import CheckIn, KeyResult, Task


class ProgressDataSource(ABC):
    """
    Storage port used by the progress pipelines.
    """

    @abstractmethod
    async def get_key_result(self, key_result_id: str) -> Optional[KeyResult]:
        """
        Fetch a key result with its quarter targets.

        Returns:
            The key result, or None if it does not exist
        """
        pass

    @abstractmethod
    async def get_check_ins(self, key_result_id: str) -> List[CheckIn]:
        """Fetch every check-in of a key result, in any order."""
        pass

    @abstractmethod
    async def get_tasks(self, key_result_id: str) -> List[Task]:
        """Fetch the tasks linked to a key result."""
        pass

    @abstractmethod
    async def add_check_in(self, key_result_id: str, check_in: CheckIn) -> CheckIn:
        """
        Persist a new check-in.

        Returns:
            The stored check-in (with its assigned id)
        """
        pass
