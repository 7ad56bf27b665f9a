"""Simulated review upload backed by a local review store."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable

from sqlalchemy import select

from ..config import Settings
from ..database import Database
from ..db_models import UserReviewRecord
from ..errors import ReviewUploadError
from ..models import ReviewDraft, UserReview

logger = logging.getLogger(__name__)

UPLOAD_STEP_PERCENT = 20
FAIL_MARKER = "#fail"
UPLOAD_FAILED_MESSAGE = "Upload failed. Remove #fail from text and try again."

ProgressCallback = Callable[[int], None]


class ReviewService:
    """Uploads user reviews and keeps the accepted ones."""

    def __init__(
        self,
        settings: Settings,
        database: Database,
    ) -> None:
        self._settings = settings
        self._database = database

    async def submit(
        self,
        movie_id: int,
        movie_title: str,
        draft: ReviewDraft,
        *,
        on_progress: ProgressCallback | None = None,
    ) -> UserReview:
        """Run the upload and return the stored review.

        Raises :class:`ReviewUploadError` when the upload is rejected.
        """

        should_fail = FAIL_MARKER in draft.content.lower()
        progress = 0
        while progress < 100:
            await asyncio.sleep(self._settings.review_upload_step_seconds)
            progress += UPLOAD_STEP_PERCENT
            if on_progress is not None:
                on_progress(progress)

        if should_fail:
            logger.warning("Review upload for movie %s rejected", movie_id)
            raise ReviewUploadError(UPLOAD_FAILED_MESSAGE)

        async with self._database.session() as session:
            record = UserReviewRecord(
                movie_id=movie_id,
                movie_title=movie_title,
                author=draft.author,
                content=draft.content,
                image_uri=draft.image_uri,
                created_at=datetime.utcnow(),
            )
            session.add(record)
            await session.commit()
            review = UserReview.model_validate(record)

        logger.info("Stored review %s for movie %s", review.id, movie_id)
        return review

    async def list_reviews(self, movie_id: int) -> list[UserReview]:
        """Return the reviews stored for ``movie_id``, newest first."""

        async with self._database.session() as session:
            result = await session.execute(
                select(UserReviewRecord)
                .where(UserReviewRecord.movie_id == movie_id)
                .order_by(UserReviewRecord.created_at.desc(), UserReviewRecord.id.desc())
            )
            records = result.scalars().all()
        return [UserReview.model_validate(record) for record in records]
