"""SEO scoring and competitive analysis.

  - seo_scoring:  CTR table, position -> score curve, share of voice, difficulty
  - competitive:  competitor stats, opportunities, potential, history maturity
  - domains:      host normalisation used for SERP matching

Everything here is pure and deterministic; empty input gives zero/neutral output.
"""
