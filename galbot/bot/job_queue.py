"""Bounded-concurrency queue for image generation jobs.

A fixed pool of asyncio workers pulls jobs from one FIFO queue. Each job
runs generate → archive → deliver; a failing job gets a single failure
notice and the worker moves on to the next one.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from galbot.bot.reply import ReplySink
from galbot.services.archive_service import ArchivalClient
from galbot.services.generation_service import GenerationClient
from galbot.utils import ERROR_JOB_FAILED

logger = logging.getLogger(__name__)


@dataclass
class ImageJob:
    """One unit of image work awaiting the pipeline."""

    prompt: str
    reply: ReplySink
    requester_id: Optional[str] = None


class ImageJobQueue:
    """Runs at most ``concurrency`` image pipelines at a time."""

    def __init__(
        self,
        generation_client: GenerationClient,
        archival_client: ArchivalClient,
        concurrency: int = 5,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.generation_client = generation_client
        self.archival_client = archival_client
        self.concurrency = concurrency
        self._queue: asyncio.Queue[ImageJob] = asyncio.Queue()
        self._workers: list[asyncio.Task] = []
        self._active = 0

    @property
    def pending(self) -> int:
        """Jobs waiting for a free worker."""
        return self._queue.qsize()

    @property
    def active(self) -> int:
        """Pipelines currently running."""
        return self._active

    @property
    def running(self) -> bool:
        return bool(self._workers)

    def start(self) -> None:
        """Spawn the worker tasks. Must be called from a running loop."""
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._worker(worker_id), name=f"image-worker-{worker_id}")
            for worker_id in range(self.concurrency)
        ]
        logger.info("Image queue started with %d workers", self.concurrency)

    def enqueue(self, job: ImageJob) -> None:
        """Queue ``job`` and return immediately."""
        if not job.prompt or not job.prompt.strip():
            raise ValueError("Image job prompt cannot be empty")
        if not self._workers:
            self.start()
        self._queue.put_nowait(job)
        logger.info(
            "Queued image job for user %s (pending=%d, active=%d)",
            job.requester_id,
            self._queue.qsize(),
            self._active,
        )

    async def join(self) -> None:
        """Wait until every queued job has been processed."""
        await self._queue.join()

    async def shutdown(self) -> None:
        """Stop the workers. Queued and in-flight jobs are abandoned."""
        if not self._workers:
            return
        abandoned = self._queue.qsize()
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info("Image queue stopped (%d queued jobs abandoned)", abandoned)

    async def _worker(self, worker_id: int) -> None:
        while True:
            job = await self._queue.get()
            self._active += 1
            try:
                await self._run_pipeline(job)
            finally:
                self._active -= 1
                self._queue.task_done()

    async def _run_pipeline(self, job: ImageJob) -> None:
        try:
            image_url = await self.generation_client.generate_image(job.prompt)
            durable_url = await self.archival_client.archive(image_url, job.prompt)
            await job.reply.send(durable_url)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                "Error in image worker (prompt=%r): %s", job.prompt, e, exc_info=True
            )
            await self._deliver_failure(job)

    async def _deliver_failure(self, job: ImageJob) -> None:
        try:
            await job.reply.send(ERROR_JOB_FAILED)
        except Exception as e:
            # The interaction may be gone; nothing else can reach the user.
            logger.error("Failed to deliver failure notice (prompt=%r): %s", job.prompt, e)
