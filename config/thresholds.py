"""
config/thresholds.py
────────────────────
Built-in water-quality thresholds and trend-detection defaults.

Drinking-water guidance bands (WHO / EPA secondary standards):
  TDS        warning ≤ 500 ppm,   critical ≤ 1000 ppm
  pH         warning 6.0 – 8.5,   critical 5.5 – 9.0
  Turbidity  warning ≤ 5 NTU,     critical ≤ 10 NTU

Kept in the same shape as the optional threshold config document
(camelCase keys) so an override document and the defaults parse alike.
"""

DEFAULT_THRESHOLD_DOCUMENT: dict[str, dict] = {
    "tds": {
        "warningMin": 0,
        "warningMax": 500,
        "criticalMin": 0,
        "criticalMax": 1000,
        "unit": "ppm",
    },
    "ph": {
        "warningMin": 6.0,
        "warningMax": 8.5,
        "criticalMin": 5.5,
        "criticalMax": 9.0,
        "unit": "",
    },
    "turbidity": {
        "warningMin": 0,
        "warningMax": 5,
        "criticalMin": 0,
        "criticalMax": 10,
        "unit": "NTU",
    },
    "trendDetection": {
        "enabled": True,
        "thresholdPercentage": 15,
        "timeWindowMinutes": 30,
    },
}
