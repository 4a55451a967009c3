# services/car_service.py
from __future__ import annotations

import json
import logging
import os
import uuid
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from db import SessionLocal
from models import Car, CarImage
from services.blob_service import StoredBlob, get_blob_store

logger = logging.getLogger(__name__)

MAX_IMAGES = 10
UPLOAD_WORKERS = int(os.getenv("UPLOAD_WORKERS", "4"))


class ValidationError(Exception):
    """Missing or malformed input; maps to 400."""


class NotFound(Exception):
    """Car absent or owned by someone else; maps to 404."""


class DependencyFailure(Exception):
    """The object store (or database) failed; maps to 500."""


class UploadFailed(DependencyFailure):
    pass


class DeleteFailed(DependencyFailure):
    pass


# ───────────── INPUT PARSING ──────────────────────────────────────────────────
def parse_tags(tags_csv: Optional[str]) -> List[str]:
    """Plain comma split: no trimming, no dedup, empty segments kept."""
    if tags_csv is None:
        return []
    return tags_csv.split(",")


def parse_existing_images(raw: Optional[str]) -> List[Dict[str, str]]:
    """
    Parse the client's list of images to keep, e.g.
    '[{"url": "...", "public_id": "users/.../a.jpg"}]'.
    Order is preserved; repeated public_ids are collapsed to the first one.
    """
    if raw is None:
        raise ValidationError("existingImages is required")
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ValidationError("existingImages must be a JSON array") from e
    if not isinstance(data, list):
        raise ValidationError("existingImages must be a JSON array")

    seen = set()
    images: List[Dict[str, str]] = []
    for entry in data:
        if not isinstance(entry, dict) or not entry.get("public_id"):
            raise ValidationError("Each existing image needs a public_id")
        public_id = str(entry["public_id"])
        if public_id in seen:
            continue
        seen.add(public_id)
        images.append({"url": entry.get("url"), "public_id": public_id})
    return images


def _require_text(title: Optional[str], description: Optional[str]) -> tuple[str, str]:
    if not title or not title.strip():
        raise ValidationError("Title is required")
    if not description or not description.strip():
        raise ValidationError("Description is required")
    return title, description


def _parse_id(car_id: Any) -> uuid.UUID:
    if isinstance(car_id, uuid.UUID):
        return car_id
    try:
        return uuid.UUID(str(car_id))
    except ValueError:
        # a malformed id can't name anybody's car
        raise NotFound("Car not found")


def _check_image_count(count: int) -> None:
    if count > MAX_IMAGES:
        raise ValidationError(f"A car can have at most {MAX_IMAGES} images")


# ───────────── OBJECT STORE ───────────────────────────────────────────────────
class _UploadLog:
    """Blobs written during one operation; deleted again if the operation fails."""

    def __init__(self, store):
        self._store = store
        self.uploaded: List[StoredBlob] = []

    def compensate(self) -> None:
        for blob in self.uploaded:
            try:
                self._store.delete(blob.public_id)
            except Exception:
                logger.exception("Compensating delete failed; blob %s is orphaned", blob.public_id)
            else:
                logger.info("Compensated upload of %s", blob.public_id)
        self.uploaded = []


def _upload_all(store, owner_id: uuid.UUID, files: Sequence, log: _UploadLog) -> List[StoredBlob]:
    """
    Upload every file concurrently and wait for all of them. Results come back
    in the order of `files`. If any upload fails the ones that succeeded are
    compensated and UploadFailed is raised.
    """
    if not files:
        return []

    workers = max(1, min(UPLOAD_WORKERS, len(files)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(store.upload, str(owner_id), f) for f in files]

    results: List[StoredBlob] = []
    first_error: Optional[BaseException] = None
    for fut in futures:
        try:
            results.append(fut.result())
        except Exception as e:
            if first_error is None:
                first_error = e
    log.uploaded.extend(results)

    if first_error is not None:
        logger.error("Image upload failed for owner %s: %s", owner_id, first_error)
        log.compensate()
        raise UploadFailed(f"Image upload failed: {first_error}") from first_error
    return results


def _delete_blob(store, public_id: str) -> None:
    try:
        store.delete(public_id)
    except Exception as e:
        logger.exception("Failed to delete blob %s", public_id)
        raise DeleteFailed(f"Failed to delete image {public_id}: {e}") from e


def _image_row(blob: StoredBlob, upload) -> CarImage:
    return CarImage(
        url=blob.url,
        public_id=blob.public_id,
        content_type=getattr(upload, "content_type", None),
        bytes=len(upload.data) if getattr(upload, "data", None) is not None else None,
        width=getattr(upload, "width", None),
        height=getattr(upload, "height", None),
    )


# ───────────── SERIALIZATION ──────────────────────────────────────────────────
def _serialize_car(car: Car) -> Dict[str, Any]:
    return {
        "id":          str(car.id),
        "user":        str(car.user_id),
        "title":       car.title,
        "description": car.description,
        "tags":        list(car.tags or []),
        "images": [
            {
                "url":       img.url,
                "public_id": img.public_id,
                "width":     img.width,
                "height":    img.height,
            }
            for img in car.images
        ],
        "created_at": car.created_at.isoformat() if car.created_at else None,
    }


def _owned_car(db, owner_id: uuid.UUID, car_id: uuid.UUID) -> Car:
    car = (
        db.query(Car)
        .options(selectinload(Car.images))
        .filter(Car.id == car_id, Car.user_id == owner_id)
        .first()
    )
    if not car:
        raise NotFound("Car not found")
    return car


# ───────────── CARS ───────────────────────────────────────────────────────────
def create_car(
    owner_id: uuid.UUID,
    title: Optional[str],
    description: Optional[str],
    tags_csv: Optional[str],
    files: Sequence,
    store=None,
) -> Dict[str, Any]:
    title, description = _require_text(title, description)
    _check_image_count(len(files))
    tags = parse_tags(tags_csv)

    if files:
        store = store or get_blob_store()
    log = _UploadLog(store)
    blobs = _upload_all(store, owner_id, files, log)

    images = [_image_row(blob, f) for blob, f in zip(blobs, files)]
    for position, img in enumerate(images):
        img.position = position

    with SessionLocal() as db:
        car = Car(user_id=owner_id, title=title, description=description, tags=tags, images=images)
        db.add(car)
        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Persisting new car failed; removing %d uploaded image(s)", len(blobs))
            log.compensate()
            raise

        db.refresh(car)
        logger.info("Created car %s for owner %s with %d image(s)", car.id, owner_id, len(images))
        return _serialize_car(car)


def list_cars(owner_id: uuid.UUID) -> List[Dict[str, Any]]:
    with SessionLocal() as db:
        cars = (
            db.query(Car)
            .options(selectinload(Car.images))
            .filter(Car.user_id == owner_id)
            .order_by(Car.created_at.asc())
            .all()
        )
        return [_serialize_car(c) for c in cars]


def get_car(owner_id: uuid.UUID, car_id: Any) -> Dict[str, Any]:
    cid = _parse_id(car_id)
    with SessionLocal() as db:
        return _serialize_car(_owned_car(db, owner_id, cid))


def update_car(
    owner_id: uuid.UUID,
    car_id: Any,
    title: Optional[str],
    description: Optional[str],
    tags_csv: Optional[str],
    existing_images_json: Optional[str],
    new_files: Sequence,
    store=None,
) -> Dict[str, Any]:
    """
    Full replacement of title/description/tags plus image reconciliation:
    images missing from `existing_images_json` are deleted remotely, the kept
    ones take the client's order and new uploads are appended after them.
    """
    title, description = _require_text(title, description)
    tags = parse_tags(tags_csv)
    keep = parse_existing_images(existing_images_json)
    _check_image_count(len(new_files))
    cid = _parse_id(car_id)

    with SessionLocal() as db:
        car = _owned_car(db, owner_id, cid)

        current = {img.public_id: img for img in car.images}
        foreign = [e["public_id"] for e in keep if e["public_id"] not in current]
        if foreign:
            raise ValidationError("existingImages references images that do not belong to this car")
        _check_image_count(len(keep) + len(new_files))

        car.title = title
        car.description = description
        car.tags = tags

        keep_ids = [e["public_id"] for e in keep]
        keep_set = set(keep_ids)
        removed = [img for img in car.images if img.public_id not in keep_set]
        if removed or new_files:
            store = store or get_blob_store()
        for img in removed:
            _delete_blob(store, img.public_id)

        log = _UploadLog(store)
        blobs = _upload_all(store, owner_id, new_files, log)

        images = [current[pid] for pid in keep_ids]
        images.extend(_image_row(blob, f) for blob, f in zip(blobs, new_files))
        for position, img in enumerate(images):
            img.position = position
        car.images = images

        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Persisting car %s failed; removing %d new image(s)", cid, len(blobs))
            log.compensate()
            raise

        db.refresh(car)
        logger.info(
            "Updated car %s: kept %d, removed %d, added %d image(s)",
            cid, len(keep_ids), len(removed), len(blobs),
        )
        return _serialize_car(car)


def delete_car(owner_id: uuid.UUID, car_id: Any, store=None) -> None:
    """
    Remove every image blob, then the record. If a blob delete fails the
    record stays so the delete can be retried.
    """
    cid = _parse_id(car_id)
    with SessionLocal() as db:
        car = _owned_car(db, owner_id, cid)
        if car.images:
            store = store or get_blob_store()
            for img in list(car.images):
                _delete_blob(store, img.public_id)

        db.delete(car)
        db.commit()
        logger.info("Deleted car %s for owner %s", cid, owner_id)
