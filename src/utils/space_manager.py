"""Space management utilities.

A space is an instructor's storefront. Its ``landing_page_content`` column
holds a JSON document; an unparseable stored value reads back as None.
"""

import logging
from typing import List, Optional

from core.clock import generate_uuid, now_ts
from core.database import DatabaseAdapter, Row
from schemas.space import SpaceCreate, SpaceUpdate
from utils.converters import convert_row, dump_json, to_db_bool
from utils.sql_builder import build_update

logger = logging.getLogger(__name__)

JSON_FIELDS = ("landing_page_content",)
BOOL_FIELDS = ("is_active",)


class SpaceManager:
    """Manages space persistence."""

    def __init__(self, db: DatabaseAdapter):
        self.db = db

    def _convert(self, row: Optional[Row]) -> Optional[Row]:
        return convert_row(row, json_fields=JSON_FIELDS, bool_fields=BOOL_FIELDS)

    def get_space_by_id(self, space_id: str) -> Optional[Row]:
        row = self.db.prepare("SELECT * FROM spaces WHERE id = ?").bind(space_id).first()
        return self._convert(row)

    def get_space_by_slug(self, instructor_id: str, slug: str) -> Optional[Row]:
        row = (
            self.db.prepare("SELECT * FROM spaces WHERE instructor_id = ? AND slug = ?")
            .bind(instructor_id, slug)
            .first()
        )
        return self._convert(row)

    def list_spaces_by_instructor(self, instructor_id: str) -> List[Row]:
        """List an instructor's spaces, newest first."""
        result = (
            self.db.prepare(
                "SELECT * FROM spaces WHERE instructor_id = ? ORDER BY created_at DESC, rowid DESC"
            )
            .bind(instructor_id)
            .all()
        )
        return [self._convert(r) for r in result.results]

    def create_space(self, instructor_id: str, space: SpaceCreate) -> Optional[Row]:
        """Create a space and return the stored row.

        Returns None when the instructor already has a space with this slug.
        """
        space_id = generate_uuid()
        now = now_ts()
        result = self.db.prepare(
            "INSERT INTO spaces (id, instructor_id, title, description, slug, max_students, "
            "is_active, landing_page_content, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(instructor_id, slug) DO NOTHING"
        ).bind(
            space_id,
            instructor_id,
            space.title,
            space.description,
            space.slug,
            space.max_students,
            to_db_bool(space.is_active),
            dump_json(space.landing_page_content),
            now,
            now,
        ).run()
        if result.meta.changes == 0:
            return None
        logger.info("Created space %s for instructor %s", space_id, instructor_id)
        return self.get_space_by_id(space_id)

    def update_space(self, space_id: str, updates: SpaceUpdate) -> Optional[Row]:
        """Apply a partial update; returns None when nothing was set."""
        statement = build_update(
            "spaces", space_id, updates, json_fields=JSON_FIELDS, bool_fields=BOOL_FIELDS
        )
        if statement is None:
            return None
        sql, params = statement
        self.db.prepare(sql).bind(*params).run()
        return self.get_space_by_id(space_id)

    def delete_space(self, space_id: str) -> bool:
        """Delete a space; courses, lessons and enrollments cascade."""
        result = self.db.prepare("DELETE FROM spaces WHERE id = ?").bind(space_id).run()
        if result.meta.changes:
            logger.info("Deleted space: %s", space_id)
        return result.meta.changes > 0
