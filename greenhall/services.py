"""
Record services: validation plus asset/document orchestration per entity.

Asset deletion is best-effort everywhere. A failed ``destroy`` comes back
as a CleanupOutcome, gets logged here, and never fails the operation.
Uploads always happen after validation, so a rejected request leaves no
asset behind; when the document write fails after an upload, the new
asset is destroyed before the error propagates.

On update, a blank optional field clears the stored value while a blank
required field is skipped. ``acquisitions`` is the exception: it is always
parsed, so a blank or non-numeric count is a 400.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Mapping, Optional

from greenhall.db import Collection, DocumentStore, Record
from greenhall.errors import NotFoundError, ValidationError
from greenhall.storage import AssetStore, CleanupOutcome, ImageUpload, StoredAsset

logger = logging.getLogger(__name__)

Payload = Mapping[str, str]

TEAM_OPTIONAL_FIELDS = ("role", "position", "team", "information", "email", "phone")

NEWS_FIELDS = {
    "title": "title",
    "newsDate": "news_date",
    "content": "content",
}

PORTFOLIO_FIELDS = {
    "companyName": "company_name",
    "description": "description",
    "industry": "industry",
    "initialInvestment": "initial_investment",
    "headquarters": "headquarters",
    "acquisitions": "acquisitions",
    "status": "status",
    "fund": "fund",
}

_COUNT_PATTERN = re.compile(r"[0-9]+")


def parse_date(value: str, field_name: str) -> datetime:
    """Parse an ISO 8601 date or datetime into UTC; naive values are taken as UTC."""
    raw = value.strip()
    if raw[-1:] in ("Z", "z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        raise ValidationError(
            f"Invalid date for {field_name}",
            details=f"Expected an ISO 8601 date, got {value!r}",
        ) from None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_count(value: str, field_name: str) -> int:
    raw = value.strip()
    if not _COUNT_PATTERN.fullmatch(raw):
        raise ValidationError(
            f"{field_name} must be a non-negative integer",
            details=f"Got {value!r}",
        )
    return int(raw)


def missing_fields(payload: Payload, names) -> list[str]:
    return [name for name in names if not (payload.get(name) or "").strip()]


def required_change(payload: Payload, name: str) -> Optional[str]:
    """Value for a required field on update, or None when absent or blank.

    A blank required field is ignored and the stored value is kept.
    """
    value = (payload.get(name) or "").strip()
    return value or None


class RecordService:
    """Shared create/update/delete orchestration for one collection."""

    collection: Collection
    label: str
    url_attr = "image_url"
    asset_attr = "image_public_id"

    def __init__(self, store: DocumentStore, assets: AssetStore):
        self.store = store
        self.assets = assets

    def list_all(self) -> list[Record]:
        return self.store.list_all(self.collection)

    def get(self, record_id: str) -> Record:
        record = self.store.get_by_id(self.collection, record_id)
        if record is None:
            raise NotFoundError(f"{self.label} not found")
        return record

    def delete(self, record_id: str) -> Optional[CleanupOutcome]:
        record = self.get(record_id)
        outcome = self._cleanup(getattr(record, self.asset_attr))
        self.store.delete_by_id(self.collection, record_id)
        logger.info("%s deleted: %s", self.label, record_id)
        return outcome

    def _upload(self, image: Optional[ImageUpload]) -> Optional[StoredAsset]:
        if image is None:
            return None
        asset = self.assets.upload(image.data, image.content_type, image.filename)
        logger.info("Image uploaded for %s: %s", self.label.lower(), asset.asset_id)
        return asset

    def _cleanup(self, asset_id: Optional[str]) -> Optional[CleanupOutcome]:
        if not asset_id:
            return None
        outcome = self.assets.destroy(asset_id)
        if not outcome.deleted:
            logger.warning("Could not destroy asset %s: %s", asset_id, outcome.error)
        return outcome

    def _insert(self, values: dict, image: Optional[ImageUpload]) -> Record:
        asset = self._upload(image)
        if asset:
            values[self.url_attr] = asset.url
            values[self.asset_attr] = asset.asset_id
        try:
            record = self.store.create(self.collection, values)
        except Exception:
            if asset:
                self._cleanup(asset.asset_id)
            raise
        logger.info("%s created: %s", self.label, record.id)
        return record

    def _apply(
        self, existing: Record, changes: dict, image: Optional[ImageUpload]
    ) -> Record:
        asset = self._upload(image)
        if asset:
            changes[self.url_attr] = asset.url
            changes[self.asset_attr] = asset.asset_id
        try:
            updated = self.store.update(self.collection, existing.id, changes)
        except Exception:
            if asset:
                self._cleanup(asset.asset_id)
            raise
        if updated is None:
            # Deleted by a concurrent request after we read it.
            if asset:
                self._cleanup(asset.asset_id)
            raise NotFoundError(f"{self.label} not found")
        if asset:
            self._cleanup(getattr(existing, self.asset_attr))
        logger.info("%s updated: %s", self.label, existing.id)
        return updated


class TeamMemberService(RecordService):
    collection = Collection.TEAM_MEMBERS
    label = "Team member"

    def create(self, payload: Payload, image: Optional[ImageUpload]) -> Record:
        if image is None:
            raise ValidationError(
                "Team member image is required", details="Missing fields: image"
            )
        if missing_fields(payload, ["name"]):
            raise ValidationError("Name is required", details="Missing fields: name")

        values = {"name": payload["name"].strip()}
        for name in TEAM_OPTIONAL_FIELDS:
            values[name] = (payload.get(name) or "").strip()
        return self._insert(values, image)

    def update(
        self, record_id: str, payload: Payload, image: Optional[ImageUpload]
    ) -> Record:
        existing = self.get(record_id)
        changes = {}
        name_value = required_change(payload, "name")
        if name_value is not None:
            changes["name"] = name_value
        for name in TEAM_OPTIONAL_FIELDS:
            if name in payload:
                changes[name] = payload[name].strip()
        return self._apply(existing, changes, image)


class NewsService(RecordService):
    collection = Collection.NEWS
    label = "News"

    @staticmethod
    def _value(name: str, raw: str):
        if name == "newsDate":
            return parse_date(raw, name)
        return raw.strip()

    def create(self, payload: Payload, image: Optional[ImageUpload]) -> Record:
        missing = missing_fields(payload, NEWS_FIELDS)
        if missing:
            raise ValidationError(
                "Title, news date, and content are required",
                details=f"Missing fields: {', '.join(missing)}",
            )
        values = {
            attr: self._value(name, payload[name]) for name, attr in NEWS_FIELDS.items()
        }
        if image is None:
            logger.info("Creating news without image")
        return self._insert(values, image)

    def update(
        self, record_id: str, payload: Payload, image: Optional[ImageUpload]
    ) -> Record:
        existing = self.get(record_id)
        changes = {}
        for name, attr in NEWS_FIELDS.items():
            value = required_change(payload, name)
            if value is not None:
                changes[attr] = self._value(name, value)
        return self._apply(existing, changes, image)


class PortfolioService(RecordService):
    collection = Collection.PORTFOLIO
    label = "Portfolio company"
    url_attr = "logo_url"
    asset_attr = "logo_public_id"

    @staticmethod
    def _value(name: str, raw: str):
        if name == "initialInvestment":
            return parse_date(raw, name)
        if name == "acquisitions":
            return parse_count(raw, name)
        return raw.strip()

    def create(self, payload: Payload, image: Optional[ImageUpload]) -> Record:
        missing = missing_fields(payload, PORTFOLIO_FIELDS)
        if missing:
            raise ValidationError(
                "All fields are required: " + ", ".join(PORTFOLIO_FIELDS),
                details=f"Missing fields: {', '.join(missing)}",
            )
        values = {
            attr: self._value(name, payload[name])
            for name, attr in PORTFOLIO_FIELDS.items()
        }
        if image is None:
            logger.info("Creating portfolio company without logo")
        return self._insert(values, image)

    def update(
        self, record_id: str, payload: Payload, image: Optional[ImageUpload]
    ) -> Record:
        existing = self.get(record_id)
        changes = {}
        for name, attr in PORTFOLIO_FIELDS.items():
            if name == "acquisitions" and name in payload:
                # Counts are always parsed, so a blank one is rejected.
                changes[attr] = parse_count(payload[name], name)
                continue
            value = required_change(payload, name)
            if value is not None:
                changes[attr] = self._value(name, value)
        return self._apply(existing, changes, image)
