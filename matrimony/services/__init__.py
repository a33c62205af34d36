from .connection_service import ConnectionService, get_connection_service
from .person_service import PersonService, get_person_service, is_profile_complete
from .recommendation_service import RecommendationService, get_recommendation_service
from .scoring import calculate_match_score
from .wallet_service import WalletService, get_wallet_service

__all__ = [
    "ConnectionService",
    "PersonService",
    "RecommendationService",
    "WalletService",
    "calculate_match_score",
    "get_connection_service",
    "get_person_service",
    "get_recommendation_service",
    "get_wallet_service",
    "is_profile_complete",
]
