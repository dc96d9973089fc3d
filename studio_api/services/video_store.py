# studio_api/services/video_store.py

import uuid
from datetime import datetime

from sqlalchemy import case, or_
from sqlalchemy.orm import Session

from ..models.video import ARTIFACT_COLUMNS, FINAL_MUX_STATUSES, ArtifactKind, Video


class VideoStore:
    """
    Row access for the videos table.

    Every write is a single UPDATE/INSERT/DELETE followed by a commit. There
    are no multi-statement transactions, so two requests for the same video
    can interleave between a read and the following write.
    """
    def __init__(self, db: Session):
        self.db = db

    # --- reads ---

    def get(self, video_id: uuid.UUID) -> Video | None:
        return self.db.query(Video).filter(Video.id == video_id).first()

    def get_owned(self, video_id: uuid.UUID, user_id: uuid.UUID) -> Video | None:
        return self.db.query(Video).filter(Video.id == video_id, Video.user_id == user_id).first()

    def find_by_upload_id(self, upload_id: str) -> list[Video]:
        return self.db.query(Video).filter(Video.mux_upload_id == upload_id).all()

    def current_keys(self, video_id: uuid.UUID) -> dict[ArtifactKind, str | None] | None:
        """Reads the artifact keys straight from the database, bypassing the session cache."""
        columns = [getattr(Video, key_column) for key_column, _ in ARTIFACT_COLUMNS.values()]
        row = self.db.query(*columns).filter(Video.id == video_id).first()
        if row is None:
            return None
        return dict(zip(ARTIFACT_COLUMNS.keys(), row))

    def referenced_keys(self, keys: set[str], exclude_video_id: uuid.UUID | None = None) -> set[str]:
        """Returns the subset of `keys` that some video row still points at."""
        if not keys:
            return set()
        key_columns = [getattr(Video, key_column) for key_column, _ in ARTIFACT_COLUMNS.values()]
        query = self.db.query(*key_columns).filter(or_(*(column.in_(keys) for column in key_columns)))
        if exclude_video_id is not None:
            query = query.filter(Video.id != exclude_video_id)
        return {key for row in query.all() for key in row if key in keys}

    # --- writes ---

    def add(self, video: Video) -> Video:
        self.db.add(video)
        self.db.commit()
        self.db.refresh(video)
        return video

    def update(self, video_id: uuid.UUID, values: dict, user_id: uuid.UUID | None = None) -> bool:
        query = self.db.query(Video).filter(Video.id == video_id)
        if user_id is not None:
            query = query.filter(Video.user_id == user_id)
        return self._apply(query, values) > 0

    def update_by_upload_id(self, upload_id: str, values: dict) -> int:
        return self._apply(self.db.query(Video).filter(Video.mux_upload_id == upload_id), values)

    def update_by_asset_id(self, asset_id: str, values: dict) -> int:
        return self._apply(self.db.query(Video).filter(Video.mux_asset_id == asset_id), values)

    def record_asset_created(self, upload_id: str, asset_id: str | None, status: str | None) -> int:
        """
        Links the upload's videos to their Mux asset in one conditional UPDATE.
        A video already linked to a different asset is left alone, and a video
        in a final state keeps its status.
        """
        query = self.db.query(Video).filter(Video.mux_upload_id == upload_id)
        values = {
            "mux_status": case((Video.mux_status.in_(FINAL_MUX_STATUSES), Video.mux_status), else_=status),
        }
        if asset_id:
            query = query.filter(or_(Video.mux_asset_id.is_(None), Video.mux_asset_id == asset_id))
            values["mux_asset_id"] = asset_id
        return self._apply(query, values)

    def delete(self, video_id: uuid.UUID) -> bool:
        deleted = self.db.query(Video).filter(Video.id == video_id).delete(synchronize_session=False)
        self.db.commit()
        return deleted > 0

    def delete_by_upload_id(self, upload_id: str) -> int:
        deleted = self.db.query(Video).filter(Video.mux_upload_id == upload_id).delete(synchronize_session=False)
        self.db.commit()
        return deleted

    def _apply(self, query, values: dict) -> int:
        values = {**values, "updated_at": datetime.utcnow()}
        updated = query.update(values, synchronize_session=False)
        self.db.commit()
        return updated
