# fraudscore/api/deps.py
from fastapi import Request

from fraudscore.domain.services.fraud_analyzer import FraudAnalyzer
from fraudscore.infra.detectors.device_intel import DeviceIntelClient


def get_fraud_analyzer(request: Request) -> FraudAnalyzer:
    return request.app.state.analyzer


def get_device_intel(request: Request) -> DeviceIntelClient:
    return request.app.state.device_intel
