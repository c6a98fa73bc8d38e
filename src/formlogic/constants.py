"""
Shared constants across formlogic modules.

This module is the single source of truth for:
- Field type names used by the form builder
- Field type categories (numeric, choice, multi-valued, temporal)
- Environment variable names read by EngineConfig
"""

# =============================================================================
# FIELD TYPES
# =============================================================================
# Field type names as stored by the form builder

FIELD_TYPE_TEXT = "text"
FIELD_TYPE_CHECKBOX = "checkbox"
FIELD_TYPE_HIDDEN = "hidden"
FIELD_TYPE_PAGEBREAK = "pagebreak"


# =============================================================================
# DERIVED SETS
# =============================================================================

# Compared numerically after coercion
NUMERIC_FIELD_TYPES = {"number", "rating", "range", "currency", "calculation", "payment"}

# Values are option ids; is_selected / is_not_selected apply
CHOICE_FIELD_TYPES = {"select", "multiselect", "radio", "checkbox", "country"}

# Values are collections of option ids (or files)
MULTI_VALUE_FIELD_TYPES = {"multiselect", "checkbox", "file_upload"}

# Compared as ISO dates / times for greater_than / less_than
TEMPORAL_FIELD_TYPES = {"date", "time", "datetime"}

# Fields rendered without being shown to the respondent
HIDDEN_BY_DEFAULT_FIELD_TYPES = {FIELD_TYPE_HIDDEN}


# =============================================================================
# PAGES
# =============================================================================

# Id of the page preceding the first pagebreak
FIRST_PAGE_ID = "page1"


# =============================================================================
# ENVIRONMENT
# =============================================================================

ENV_PREFIX = "FORMLOGIC_"
ENV_CALCULATION_DECIMAL_PLACES = f"{ENV_PREFIX}CALCULATION_DECIMAL_PLACES"
ENV_VALIDATE_NAVIGATION_TARGETS = f"{ENV_PREFIX}VALIDATE_NAVIGATION_TARGETS"
ENV_MAX_RULES = f"{ENV_PREFIX}MAX_RULES"
