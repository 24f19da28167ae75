"""Exception classes raised by the ingestion pipeline and result store."""


class ResultPortalError(Exception):
    """Base application exception carrying an HTTP status and error code."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class IngestionError(ResultPortalError):
    """Uploaded workbook could not be turned into results."""

    status_code = 400
    code = "INGESTION_FAILED"


class DecodeError(IngestionError):
    """File content is not a readable spreadsheet."""

    code = "DECODE_ERROR"


class NoValidDataError(IngestionError):
    """Workbook decoded, but no row passed normalization."""

    code = "NO_VALID_DATA"

    def __init__(
        self,
        message: str = (
            "No valid data found. Please ensure the Excel follows the template "
            "(Data starts from row 5 with headers: SL, Name, Reg, Mark)."
        ),
    ):
        super().__init__(message)


class ValidationError(ResultPortalError):
    """Request is missing required fields."""

    status_code = 400
    code = "VALIDATION_ERROR"


class NotFoundError(ResultPortalError):
    """No results matched the query."""

    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, message: str = "No results found"):
        super().__init__(message)


class StoreError(ResultPortalError):
    """Transaction or constraint failure while writing results."""

    status_code = 500
    code = "STORE_ERROR"
