from .ai_gateway import AIGatewayClient
from .batch_store import BatchStore
from .orchestrator import BatchOrchestrator
from .progress import ProgressAggregator, compute_progress, derive_status
from .response_parser import ParseOutcome, ParseResult, extract_json_array, parse_word_statuses
from .sqs_publisher import SQSPublisher
from .sqs_receiver import SQSReceiver

__all__ = [
    "AIGatewayClient",
    "BatchStore",
    "BatchOrchestrator",
    "ProgressAggregator",
    "compute_progress",
    "derive_status",
    "ParseOutcome",
    "ParseResult",
    "extract_json_array",
    "parse_word_statuses",
    "SQSPublisher",
    "SQSReceiver",
]
