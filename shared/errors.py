# shared/errors.py
from fastapi import HTTPException, status


class NotFound(HTTPException):
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ValidationFailure(HTTPException):
    """Input rejected before any document is written."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class UnauthorizedAccess(HTTPException):
    def __init__(self, detail: str = "You do not have access to this resource"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class PartialWriteFailure(HTTPException):
    """A store error interrupted a multi-document write."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


class MalformedDocument(HTTPException):
    def __init__(self, collection: str, doc_id: str, reason: str):
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Stored {collection} document {doc_id} is malformed: {reason}",
        )
