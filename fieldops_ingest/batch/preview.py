"""
Read-only parse preview of a staged upload set, plus the single-worksheet
guardrail used when files are picked for upload.

Nothing here writes to the row store or to object storage.
"""

from collections.abc import Mapping
from datetime import date
from uuid import UUID

from fieldops_ingest.core.errors import IngestError, NoStagedFilesError, UnsupportedFileTypeError, ValidationError
from fieldops_ingest.core.matching.fiscal_anchor import parse_reference_date
from fieldops_ingest.core.matching.readiness import evaluate_file_readiness
from fieldops_ingest.core.models.preview import FilePreview, FileValidation, PreviewCounts, PreviewResult
from fieldops_ingest.core.profiles.profile_config import SourceProfile
from fieldops_ingest.observability import metrics
from fieldops_ingest.observability.logger import get_logger, log_operation
from fieldops_ingest.storage.base import ObjectStore
from fieldops_ingest.storage.layout import StorageLayout
from fieldops_ingest.storage.listing import list_staged_files
from fieldops_ingest.utils.validation import validate_upload_set_id

from .extraction import SheetExtractor
from .readers.file_reader import file_extension
from .readers.sheet import FileParseError
from .readers.workbook_reader import WorkbookReader, WorkbookReadError

logger = get_logger(__name__)

REGION_WARNING = "Region not detected from title row"


class ParsePreviewer:
    """
    Lists staged files and reports, per file, how they would commit.
    """

    def __init__(self, store: ObjectStore, profiles: Mapping[str, SourceProfile],
                 list_limit: int = 500):
        self.store = store
        self.profiles = profiles
        self.list_limit = list_limit

    def preview(
        self,
        upload_set_id: UUID | str,
        fiscal_month_anchor: date | str,
        source_system: str = "ontrac",
    ) -> PreviewResult:
        """
        Preview every file staged for an upload set.

        Args:
            upload_set_id: Upload set to inspect
            fiscal_month_anchor: Anchor the files were staged under
            source_system: Source profile to match against

        Returns:
            PreviewResult; ``ok`` is true when at least one file parsed

        Raises:
            ValidationError: Missing or malformed identifiers, unknown source
            NoStagedFilesError: If nothing is staged under the prefix
            StorageError: If the staging prefix cannot be listed
        """
        upload_set_id = validate_upload_set_id(upload_set_id)
        if not fiscal_month_anchor:
            raise ValidationError("Missing fiscal_month_anchor")
        anchor = parse_reference_date(fiscal_month_anchor)
        profile = self.profiles.get(source_system)
        if profile is None:
            raise ValidationError(f"Unknown source_system '{source_system}'")

        layout = StorageLayout(source_system, anchor, upload_set_id)
        prefix = layout.staging_prefix

        with log_operation("Previewing upload set", logger=logger, upload_set_id=str(upload_set_id)), \
                metrics.track_duration(metrics.stage_duration_seconds, source_system=source_system, stage="preview"):
            names = list_staged_files(self.store, prefix, limit=self.list_limit)
            if not names:
                raise NoStagedFilesError(prefix)

            extractor = SheetExtractor(profile)
            files = [self._preview_file(extractor, layout, name) for name in names]

        parsed_ok = sum(1 for f in files if f.ok)
        metrics.increment_counter(metrics.files_processed_total, parsed_ok,
                                  source_system=source_system, stage="preview", status="ok")
        metrics.increment_counter(metrics.files_processed_total, len(files) - parsed_ok,
                                  source_system=source_system, stage="preview", status="failed")

        return PreviewResult(
            ok=parsed_ok > 0,
            bucket=self.store.bucket,
            prefix=prefix,
            counts=PreviewCounts(listed=len(names), parsed_ok=parsed_ok, failed=len(files) - parsed_ok),
            files=files,
        )

    def _preview_file(self, extractor: SheetExtractor, layout: StorageLayout, name: str) -> FilePreview:
        path = layout.staged_path(name)
        try:
            extractor.file_reader.check_supported(name)
            content = self.store.download(path)
            parsed = extractor.parse(name, content, extract_unmatched=True)
        except (IngestError, FileParseError) as e:
            logger.warning("Preview failed for file", extra={"file": name, "error": str(e)})
            return FilePreview(ok=False, file=name, storage_path=path, error=str(e))

        selection = parsed.selection
        if parsed.sheet is None:
            return FilePreview(
                ok=False,
                file=name,
                storage_path=path,
                sheet_count=selection.sheet_count,
                sheet_names=selection.sheet_names,
                error="No worksheet found",
            )

        profile = extractor.profile
        rows_estimate = len(parsed.rows)
        readiness = evaluate_file_readiness(
            headers=selection.headers,
            matcher=extractor.matcher,
            region_detector=extractor.region_detector,
            row1_text=parsed.row1_text,
            data_rows_estimate=rows_estimate,
            sheet_count=selection.sheet_count,
            sheet_names=selection.sheet_names,
            matched_sheet_name=selection.sheet_name if selection.matched else None,
            title_row=profile.title_row,
            header_row=profile.header_row,
        )

        warnings = []
        if not selection.matched:
            warnings.append("Header fingerprint mismatch (no worksheet matched expected headers)")
        if parsed.region_name is None:
            warnings.append(REGION_WARNING)
        if parsed.keyless_rows:
            warnings.append(
                f"{len(parsed.keyless_rows)} row(s) have no {profile.natural_key_header} "
                "and will not be inserted"
            )

        return FilePreview(
            ok=True,
            file=name,
            storage_path=path,
            sheet_count=selection.sheet_count,
            sheet_names=selection.sheet_names,
            expected_header_fingerprint=selection.expected_fingerprint,
            file_header_fingerprint=selection.file_fingerprint,
            header_match=selection.matched,
            matched_sheet_name=selection.sheet_name if selection.matched else None,
            row1_text=parsed.row1_text,
            headers=[h for h in selection.headers if h],
            region_detected=parsed.region_name,
            data_rows_estimate=rows_estimate,
            readiness=readiness,
            warnings=warnings,
        )


def validate_upload_file(name: str, content: bytes) -> FileValidation:
    """
    Single-worksheet guardrail for a file about to be uploaded.

    CSV files pass (``n/a``); an .xlsx passes only with exactly one worksheet.

    Raises:
        UnsupportedFileTypeError: For any other extension
    """
    ext = file_extension(name)
    if ext == ".csv":
        return FileValidation(ok=True, kind="csv", single_sheet="n/a")
    if ext != ".xlsx":
        raise UnsupportedFileTypeError(name, [".xlsx", ".csv"])

    try:
        sheet_names = WorkbookReader().sheet_names(content)
    except WorkbookReadError as e:
        return FileValidation(ok=False, kind="xlsx", single_sheet="fail", error=str(e))

    single = len(sheet_names) == 1
    return FileValidation(
        ok=single,
        kind="xlsx",
        single_sheet="pass" if single else "fail",
        sheet_count=len(sheet_names),
        sheet_names=sheet_names,
        error=None if single else f"Expected exactly 1 worksheet, found {len(sheet_names)}",
    )
