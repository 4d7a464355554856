from .contracts import AccessDecision, AccessReason, Collection, Identity, SubscriptionInfo
from .ports import BillingOraclePort, CollectionLookupPort, IdentityResolverPort
from .service import AccessDecisionEngine
from .clients import BillingServiceClient, MainServiceClient, make_clients_from_env

__all__ = [
    "AccessDecision",
    "AccessReason",
    "Collection",
    "Identity",
    "SubscriptionInfo",
    "BillingOraclePort",
    "CollectionLookupPort",
    "IdentityResolverPort",
    "AccessDecisionEngine",
    "BillingServiceClient",
    "MainServiceClient",
    "make_clients_from_env",
]
