"""
Custom exceptions used throughout the deriva-clonetax package.

Every failure is fatal to a clone run. Precondition errors are raised before
any mutation, term insert and store errors are raised mid-run and leave the
terms that were already cloned in place.
"""


class CloneTaxException(Exception):
    """Exception class specific to the clonetax module.

    Args:
        msg (str): Optional message for the exception.
    """

    def __init__(self, msg=""):
        super().__init__(msg)
        self._msg = msg


class CloneTaxConfigurationError(CloneTaxException):
    """Invalid command line or configuration file input."""


class CloneTaxStoreError(CloneTaxException):
    """A storage operation against the taxonomy store failed."""


class CloneTaxPreconditionError(CloneTaxException):
    """A precondition of the clone operation does not hold.

    Args:
        code: Short machine readable failure code (e.g. ``missing_source_tax``).
        value: The offending taxonomy or post type name.
        msg: Human readable message.
    """

    code = "precondition_failed"

    def __init__(self, value: str, msg: str = ""):
        super().__init__(f"[{self.code}] {msg}" if msg else f"[{self.code}] {value}")
        self.value = value


class MissingSourceTaxonomy(CloneTaxPreconditionError):
    code = "missing_source_tax"

    def __init__(self, value: str):
        super().__init__(value, f"Source taxonomy {value} does not exist.")


class MissingTargetTaxonomy(CloneTaxPreconditionError):
    code = "missing_target_tax"

    def __init__(self, value: str):
        super().__init__(value, f"Target taxonomy {value} does not exist.")


class MissingPostType(CloneTaxPreconditionError):
    code = "missing_post_type"

    def __init__(self, value: str):
        super().__init__(value, f"Post type {value} does not exist.")


class TargetTaxonomyNotEmpty(CloneTaxPreconditionError):
    code = "target_tax_not_empty"

    def __init__(self, value: str, term_count: int = 0):
        super().__init__(value, f"Target taxonomy {value} is not empty ({term_count} terms).")
        self.term_count = term_count


class TermInsertError(CloneTaxException):
    """Inserting a term into the target taxonomy failed.

    Args:
        code: Failure code reported by the store (``term_exists``, ``missing_parent``, ...).
        name: Name of the term that could not be inserted.
        taxonomy: Taxonomy the insert was attempted in.
        msg: Underlying cause.
    """

    def __init__(self, code: str, name: str, taxonomy: str, msg: str = ""):
        detail = f": {msg}" if msg else ""
        super().__init__(f"[{code}] Could not insert term {name} into taxonomy {taxonomy}{detail}")
        self.code = code
        self.name = name
        self.taxonomy = taxonomy
