from ai_trading.services.analysis_service import AnalysisService
from ai_trading.services.data_service import DataService
from ai_trading.services.database_service import DatabaseService, create_supabase_client
from ai_trading.services.signal_service import SignalService

__all__ = [
    "AnalysisService",
    "DataService",
    "DatabaseService",
    "SignalService",
    "create_supabase_client",
]
