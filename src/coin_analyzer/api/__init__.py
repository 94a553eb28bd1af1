"""
Client side of the coin analysis backend.

This module provides the transport/retry engine, the multipart encoder, the
response models and the typed errors raised by an analysis call.
"""

from .client import AnalysisClient, classify_transport_error, decode_analysis_response
from .connectivity import ConnectivityProbe, TCPConnectivityProbe, check_connectivity
from .errors import (
    AnalysisError,
    ConnectionFailed,
    DataCorruption,
    InvalidRequest,
    MalformedResponse,
    NoConnectivity,
    RequestTimeout,
    ServerError,
    TransportError,
)
from .models import (
    AnalysisErrorResponse,
    AnalysisMetadata,
    AnalysisRequest,
    BasicInfo,
    CoinAnalysis,
    CoinAnalysisResponse,
    CoinSide,
    EncodedImage,
    TechnicalDetails,
    ValueAssessment,
)
from .multipart import content_type_for, encode_multipart, new_boundary

__all__ = [
    # Engine
    "AnalysisClient",
    "classify_transport_error",
    "decode_analysis_response",
    "ConnectivityProbe",
    "TCPConnectivityProbe",
    "check_connectivity",

    # Errors
    "AnalysisError",
    "ConnectionFailed",
    "DataCorruption",
    "InvalidRequest",
    "MalformedResponse",
    "NoConnectivity",
    "RequestTimeout",
    "ServerError",
    "TransportError",

    # Models
    "AnalysisErrorResponse",
    "AnalysisMetadata",
    "AnalysisRequest",
    "BasicInfo",
    "CoinAnalysis",
    "CoinAnalysisResponse",
    "CoinSide",
    "EncodedImage",
    "TechnicalDetails",
    "ValueAssessment",

    # Multipart
    "content_type_for",
    "encode_multipart",
    "new_boundary",
]
