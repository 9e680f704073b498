"""Response validators and their combinators"""

import logging
import re
from typing import Callable, List, Optional

from rqkit.domain.errors import RequestError, ValidationError
from rqkit.domain.models.response import Response

logger = logging.getLogger(__name__)

# A validator returns None when the response passes, or the error describing
# why it does not. A response that already carries an error fails with it.
Validator = Callable[[Response], Optional[RequestError]]


class Validate:
    """Namespace of validator factories

    Example:
        request.validate(Validate.all(Validate.ok(), Validate.header_exists("ETag")))
    """

    @staticmethod
    def ok() -> Validator:
        """Status must be 2xx"""

        def _validate(resp: Response) -> Optional[RequestError]:
            if resp.error is not None:
                return resp.error
            if not resp.is_ok:
                return ValidationError(f"expected 2xx status, got {resp.status_code}")
            return None

        return _validate

    @staticmethod
    def status_code(expected: int) -> Validator:
        """Status must equal ``expected``"""

        def _validate(resp: Response) -> Optional[RequestError]:
            if resp.error is not None:
                return resp.error
            if resp.status_code != expected:
                return ValidationError(f"expected status {expected}, got {resp.status_code}")
            return None

        return _validate

    @staticmethod
    def header(key: str, expected_value: str) -> Validator:
        """Header ``key`` must equal ``expected_value``"""

        def _validate(resp: Response) -> Optional[RequestError]:
            if resp.error is not None:
                return resp.error
            actual = resp.headers.get(key, "")
            if actual != expected_value:
                return ValidationError(
                    f"expected header {key!r} to be {expected_value!r}, got {actual!r}"
                )
            return None

        return _validate

    @staticmethod
    def header_exists(key: str) -> Validator:
        """Header ``key`` must be present and non-empty"""

        def _validate(resp: Response) -> Optional[RequestError]:
            if resp.error is not None:
                return resp.error
            if not resp.headers.get(key):
                return ValidationError(f"expected header {key!r} to exist")
            return None

        return _validate

    @staticmethod
    def body_contains(substr: str) -> Validator:
        """Body must contain ``substr``"""

        def _validate(resp: Response) -> Optional[RequestError]:
            if resp.error is not None:
                return resp.error
            body = resp.content.decode("utf-8", errors="replace")
            if substr not in body:
                return ValidationError(f"response body does not contain {substr!r}")
            return None

        return _validate

    @staticmethod
    def body_matches(pattern: str) -> Validator:
        """Body must match regex ``pattern`` (searched anywhere in the body)"""

        def _validate(resp: Response) -> Optional[RequestError]:
            if resp.error is not None:
                return resp.error
            try:
                compiled = re.compile(pattern)
            except re.error as e:
                return ValidationError(f"invalid regex pattern {pattern!r}: {e}")
            body = resp.content.decode("utf-8", errors="replace")
            if compiled.search(body) is None:
                return ValidationError(f"response body does not match pattern {pattern!r}")
            return None

        return _validate

    @staticmethod
    def all(*validators: Validator) -> Validator:
        """Every validator must pass; stops at the first failure"""

        def _validate(resp: Response) -> Optional[RequestError]:
            for validator in validators:
                error = validator(resp)
                if error is not None:
                    return error
            return None

        return _validate

    @staticmethod
    def any(*validators: Validator) -> Validator:
        """At least one validator must pass; stops at the first success"""

        def _validate(resp: Response) -> Optional[RequestError]:
            errors: List[RequestError] = []
            for validator in validators:
                error = validator(resp)
                if error is None:
                    return None
                errors.append(error)

            if len(errors) == 1:
                return errors[0]
            details = " ".join(f"[{i}] {e}" for i, e in enumerate(errors, start=1))
            return ValidationError(f"all validators failed: {details}".rstrip())

        return _validate

    @staticmethod
    def not_(validator: Validator) -> Validator:
        """Invert ``validator``"""

        def _validate(resp: Response) -> Optional[RequestError]:
            if validator(resp) is None:
                return ValidationError("expected validation to fail but it passed")
            return None

        return _validate


def run_validators(resp: Response, validators: List[Validator]) -> Optional[RequestError]:
    """Run ``validators`` in order and return the first error"""
    for validator in validators:
        error = validator(resp)
        if error is not None:
            logger.debug(f"Response validation failed: {error}")
            return error
    return None
