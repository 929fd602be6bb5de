DEFAULT_ENTITY_TYPE = "product"
DEFAULT_ROWS_LIMIT = 9999
DEFAULT_FACET_LIMIT = 100
DEFAULT_INDEX_NAME = "storefront-search"
DEFAULT_STORE_ID = 1

UNIQUE_KEY = "unique"
PRICE_FIELD = "price"
CATEGORY_FIELD = "categories"
SHOW_IN_CATEGORY_FIELD = "show_in_categories"
OPTIONS_FIELD = "_options"
SCORE_FIELD = "_score"
WILDCARD = "*"

SORT_RELEVANCE = "relevance"
SORT_POSITION = "position"
SORT_PRICE = "price"
SORT_FIELD_PREFIX = "sort_by_"
POSITION_FIELD_PREFIX = "position_category_"

VISIBILITY_NOT_VISIBLE = 1
VISIBILITY_IN_CATALOG = 2
VISIBILITY_IN_SEARCH = 3
VISIBILITY_BOTH = 4
VISIBLE_IN_CATALOG_IDS = (VISIBILITY_IN_CATALOG, VISIBILITY_BOTH)
VISIBLE_IN_SEARCH_IDS = (VISIBILITY_IN_SEARCH, VISIBILITY_BOTH)

BACKEND_DATETIME = "datetime"
BACKEND_DECIMAL = "decimal"
BACKEND_INT = "int"
BACKEND_VARCHAR = "varchar"
FRONTEND_MULTISELECT = "multiselect"

DEFAULT_LOCALE = "en_US"
DEFAULT_TIMEZONE = "UTC"
