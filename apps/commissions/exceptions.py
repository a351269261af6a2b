from core.exceptions import ConflictError, NotFoundError, ValidationFailed


class NoPayableCommissions(ValidationFailed):
    default_code = "no_payable_commissions"

    def __init__(self) -> None:
        super().__init__("No payable commissions found")


class BatchNotFound(NotFoundError):
    default_code = "batch_not_found"

    def __init__(self, batch_id) -> None:
        super().__init__(f"Payout batch {batch_id} not found")


class BatchConflict(ConflictError):
    default_code = "batch_claim_conflict"


class BatchAlreadyPaid(ConflictError):
    default_code = "batch_already_paid"
    retryable = False

    def __init__(self, batch_id) -> None:
        super().__init__(f"Payout batch {batch_id} is already marked as paid")
