"""Buyer matching for classified deals."""

from dealiq.matching.buyers import BuyerMatcher
