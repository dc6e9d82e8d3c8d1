"""
Dataset packaging and bucket folder helpers.

  - Sample dataset download: the six local CSVs zipped together
  - Upload of a CSV set to a bucket folder
  - Bucket folder browsing for the cloud-mode picker
"""

from __future__ import annotations

import io
import zipfile
from dataclasses import dataclass
from pathlib import Path

import structlog

from ingest.records import DATASET_FILES
from integrations.s3_client import S3Client, S3Error, S3Object

logger = structlog.get_logger()

SAMPLE_DATASET_NAME = "trelliso-sample-dataset.zip"


@dataclass
class UploadResult:
    name: str
    key: str
    size: int
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def build_sample_dataset_zip(local_data_dir: str | Path) -> bytes:
    """Zip the required CSVs from the local data directory."""
    data_dir = Path(local_data_dir)
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for filename in DATASET_FILES:
            path = data_dir / filename
            if not path.exists():
                logger.warning("sample_dataset_file_missing", filename=filename, path=str(path))
                continue
            archive.write(path, arcname=filename)
    return buffer.getvalue()


def missing_required_files(names: list[str]) -> list[str]:
    """Required dataset files absent from a list of names or object keys."""
    present = {name.rsplit("/", 1)[-1] for name in names}
    return [filename for filename in DATASET_FILES if filename not in present]


async def upload_dataset_folder(
    s3_client: S3Client,
    bucket: str,
    folder: str,
    files: list[tuple[str, bytes]],
) -> list[UploadResult]:
    """
    Put each (filename, content) pair under <folder>/<filename>.

    An empty folder uploads to the bucket root. A failed file is reported
    in its result and does not stop the others.
    """
    prefix = folder.strip().strip("/")
    results = []
    for name, content in files:
        key = f"{prefix}/{name}" if prefix else name
        try:
            await s3_client.put_object(bucket, key, content)
            results.append(UploadResult(name=name, key=key, size=len(content)))
        except S3Error as e:
            logger.error("dataset_upload_failed", bucket=bucket, key=key, error=str(e))
            results.append(UploadResult(name=name, key=key, size=len(content), error=str(e)))
    return results


async def browse_folder(s3_client: S3Client, bucket: str, folder: str) -> list[S3Object]:
    """List the CSV objects of a folder; any failure reads as an empty folder."""
    prefix = folder.strip().strip("/")
    try:
        return await s3_client.list_objects(bucket, f"{prefix}/" if prefix else "")
    except Exception as e:
        logger.warning("bucket_browse_failed", bucket=bucket, folder=folder, error=str(e))
        return []
