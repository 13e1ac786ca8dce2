class PromoCodeError(Exception):
    pass


class PromoPoolExhaustedError(PromoCodeError):
    pass


class PromoAssignmentNotFoundError(PromoCodeError):
    pass


class PromoInvalidExpiryError(PromoCodeError):
    pass


class PromoRecordCorruptError(PromoCodeError):
    pass
