"""Deal analysis stages: valuation, offers, scoring, classification and strategy."""

from dealiq.analysis.engine import DealAnalyzer
from dealiq.analysis.valuation import ValuationEstimator
from dealiq.analysis.offer import MAOCalculator
from dealiq.analysis.scoring import ScoringEngine
from dealiq.analysis.classifier import DealClassifier
from dealiq.analysis.strategies import StrategyRecommender
from dealiq.analysis.projection import HoldingPeriodAnalyzer
