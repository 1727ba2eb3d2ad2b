"""Constants used across the operator."""

# Custom resource coordinates
API_GROUP = "platform.com"
API_VERSION = "v1alpha1"
DOMAIN_PLURAL = "domains"
DOMAIN_KIND = "Domain"

# Cleanup marker owned by this controller
DOMAIN_FINALIZER = "domain.platform.com/controller_finalizer"

# Labels put on namespaces created for a domain
DOMAIN_LABEL = "platform.com/domain"
MANAGED_BY_LABEL = "platform.com/managed-by"

DEFAULT_OPERATOR_NAME = "domain-operator"

# Database table holding one row per domain
DOMAINS_TABLE = "domains"
