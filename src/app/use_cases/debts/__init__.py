"""Debt ledger use cases"""
from .create_charge import CreateCharge
from .create_payment import CreatePayment
from .create_adjustment import CreateAdjustment
from .mark_paid import MarkPaid
from .get_customer_debt import GetCustomerDebt
from .get_customer_history import GetCustomerHistory
from .list_transactions import ListTransactions
from .get_aging_report import GetAgingReport
from .get_summary import GetDebtSummary
from .get_metrics import GetDebtMetrics
from .reconcile_ledger import ReconcileLedger
from .dtos import (
    ChargeCommandDTO,
    PaymentCommandDTO,
    AdjustmentCommandDTO,
    MarkPaidCommandDTO,
    TransactionFiltersDTO,
    CustomerDTO,
    DebtTabDTO,
    DebtTransactionDTO,
    DebtMutationResponseDTO,
    CustomerDebtResponseDTO,
    CustomerHistoryResponseDTO,
    PaginationDTO,
    ListTransactionsResponseDTO,
    AgingReportCustomerDTO,
    AgingReportSummaryDTO,
    AgingReportResponseDTO,
    DebtSummaryItemDTO,
    DebtSummaryResponseDTO,
    DebtMetricsResponseDTO,
    TabDiscrepancyDTO,
    ReconciliationResultDTO,
)

__all__ = [
    "CreateCharge",
    "CreatePayment",
    "CreateAdjustment",
    "MarkPaid",
    "GetCustomerDebt",
    "GetCustomerHistory",
    "ListTransactions",
    "GetAgingReport",
    "GetDebtSummary",
    "GetDebtMetrics",
    "ReconcileLedger",
    "ChargeCommandDTO",
    "PaymentCommandDTO",
    "AdjustmentCommandDTO",
    "MarkPaidCommandDTO",
    "TransactionFiltersDTO",
    "CustomerDTO",
    "DebtTabDTO",
    "DebtTransactionDTO",
    "DebtMutationResponseDTO",
    "CustomerDebtResponseDTO",
    "CustomerHistoryResponseDTO",
    "PaginationDTO",
    "ListTransactionsResponseDTO",
    "AgingReportCustomerDTO",
    "AgingReportSummaryDTO",
    "AgingReportResponseDTO",
    "DebtSummaryItemDTO",
    "DebtSummaryResponseDTO",
    "DebtMetricsResponseDTO",
    "TabDiscrepancyDTO",
    "ReconciliationResultDTO",
]
