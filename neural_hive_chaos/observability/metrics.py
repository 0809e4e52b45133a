"""Métricas Prometheus do operator de experimentos de chaos."""
from prometheus_client import Counter, Histogram

# Métricas de Reconciliação
reconcile_total = Counter(
    'chaos_operator_reconcile_total',
    'Total de passadas de reconciliação',
    ['status']
)

reconcile_duration = Histogram(
    'chaos_operator_reconcile_duration_seconds',
    'Duração de uma passada de reconciliação',
    buckets=[0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0]
)

reconcile_step_errors_total = Counter(
    'chaos_operator_reconcile_step_errors_total',
    'Total de falhas por etapa da reconciliação',
    ['step']
)

# Métricas do ciclo de vida do experimento
phase_transitions_total = Counter(
    'chaos_operator_phase_transitions_total',
    'Total de transições de fase dos experimentos',
    ['from_phase', 'to_phase']
)

chaos_spec_changes_total = Counter(
    'chaos_operator_chaos_spec_changes_total',
    'Total de reaplicações do spec de falha',
    ['kind']
)

jobs_created_total = Counter(
    'chaos_operator_jobs_created_total',
    'Total de Jobs de injeção criados',
    ['requirement']
)

verify_results_total = Counter(
    'chaos_operator_verify_results_total',
    'Total de verificações registradas',
    ['success']
)

status_conflicts_total = Counter(
    'chaos_operator_status_conflicts_total',
    'Total de conflitos ao escrever status'
)

# Métricas dos clientes
k8s_operations_total = Counter(
    'chaos_operator_k8s_operations_total',
    'Total de operações na API Kubernetes',
    ['operation', 'status']
)

k8s_operation_duration = Histogram(
    'chaos_operator_k8s_operation_duration_seconds',
    'Duração das operações na API Kubernetes',
    ['operation'],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0)
)

chaosmesh_operations_total = Counter(
    'chaos_operator_chaosmesh_operations_total',
    'Total de operações ChaosMesh',
    ['operation', 'chaos_type', 'status']
)

chaosmesh_operation_duration = Histogram(
    'chaos_operator_chaosmesh_operation_duration_seconds',
    'Duração das operações ChaosMesh',
    ['operation'],
    buckets=(0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0)
)
