"""
clusterlab - clustering engine.

K-Means family (pluggable initialization and reassignment), single-linkage
hierarchical clustering, Markov clustering, the gap statistic and tight
clustering.
"""

__version__ = "1.0.0"
