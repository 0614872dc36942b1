# ==============================================
# TOPIC 7: VALIDATION
# ==============================================
#
# Post-migration checks: record counts plus a field-by-field
# comparison of sampled source documents against destination rows.
#
# Modules:
# --------
# - validator.py → Validator, ValidationReport, SampleDetail
#
# ==============================================

from .validator import SampleDetail, ValidationReport, ValidationStatus, Validator

__all__ = [
    "SampleDetail",
    "ValidationReport",
    "ValidationStatus",
    "Validator",
]
