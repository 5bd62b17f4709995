from fastapi import HTTPException, status    


class ValidationError(Exception):
    """Malformed time range or unparsable time string."""


class FormatError(ValidationError):
    pass


class StoreError(Exception):
    """A persistence call or transaction failed and was rolled back."""


class ConflictResolutionError(StoreError):
    pass


class NotFoundError(Exception):
    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


def get_user_exception():
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    return credentials_exception


def get_unknown_entity_exception():
    entity_exception = HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Entity not found"
    )
    return entity_exception


def get_validation_exception(error: ValidationError):
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=str(error)
    )


def get_store_exception(error: StoreError):
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Storage failure - {error}"
    )
