# /bealigned/utils/metrics.py

from prometheus_client import Counter, Histogram

# This file defines all Prometheus metrics used for service monitoring.
# Centralizing them here makes them easy to find and manage.

# Reflection Flow Metrics
reflection_turns_counter = Counter(
    'reflection_turns_total', 'Reflection turns processed', ['outcome']
)
phase_transitions_counter = Counter(
    'phase_transitions_total', 'Phase transitions', ['from_phase', 'forced']
)

# AI Metrics
ai_requests_counter = Counter('ai_requests_total', 'Total AI requests', ['model', 'status'])

# Performance Metrics
response_time_histogram = Histogram('response_time_seconds', 'Response time in seconds', ['endpoint'])
