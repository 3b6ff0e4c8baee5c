from aegis.analysis.analyzer import ThreatAnalyzer
from aegis.analysis.base import BaseThreatAnalyzer
from aegis.analysis.factory import AnalyzerFactory

__all__ = ["AnalyzerFactory", "BaseThreatAnalyzer", "ThreatAnalyzer"]
