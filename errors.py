class LendingError(Exception):
    pass


class NotFoundError(LendingError):
    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} not found")


class ConflictError(LendingError):
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class LendingTimeoutError(LendingError):
    retryable = True

    def __init__(self, asset_id: str, timeout: float):
        self.asset_id = asset_id
        self.timeout = timeout
        super().__init__(f"could not lock asset {asset_id} within {timeout:g}s")


# stored state broke an invariant; clients only see a generic 500
class InternalInconsistencyError(LendingError):
    def __init__(self, asset_id: str, detail: str):
        self.asset_id = asset_id
        self.detail = detail
        super().__init__(f"asset {asset_id}: {detail}")


class LedgerImmutableError(LendingError):
    pass
