"""
Abstract base class for job processors.

The job queue calls processor(cancel_event, job) without knowing what the
job does. Any callable with that shape works (the tests pass plain
functions); AbstractJobProcessor is the shape for real processors.

To plug in a new kind of work:
1. Create a class that inherits AbstractJobProcessor
2. Implement run()
3. Pass an instance to JobQueue(processor=...)
"""

import threading
from abc import ABC, abstractmethod

from models.job import Job


class AbstractJobProcessor(ABC):

    @abstractmethod
    def run(self, cancel: threading.Event, job: Job) -> dict:
        """
        Execute the job.

        Args:
            cancel: set when the queue is shutting down. Long-running
                    processors should check it and bail out early.
            job:    a copy of the job record; job.payload holds the
                    caller's parameters.

        Returns:
            dict with results — stored as job.result.

        Raises:
            Any exception → the job is marked failed with str(exception).
            It must be safe to call run() from several threads at once.
        """
        ...

    def __call__(self, cancel: threading.Event, job: Job) -> dict:
        return self.run(cancel, job)
