"""Contracts package.

Typed contract terms, payroll and dead cap, team options and the
commissioner-approved contract requests (arbitration, extension, restructure).
"""
from contracts.models import (
    Arbitration,
    ContractMap,
    ContractTerm,
    Fixed,
    TeamControl,
    TeamOption,
    UnrestrictedFreeAgent,
    dollar_amount,
    format_contract_map,
    format_dollars,
    format_term,
    parse_contract_map,
    parse_term,
)
from contracts.options import decline_option, exercise_option, list_team_options
from contracts.payroll import add_dead_cap, delete_dead_cap, dfa_release_charges, list_dead_cap, team_payroll
from contracts.pending_actions import (
    list_pending_actions,
    process_action,
    submit_arbitration,
    submit_extension,
    submit_restructure,
)

__all__ = [
    "Fixed",
    "TeamControl",
    "Arbitration",
    "UnrestrictedFreeAgent",
    "TeamOption",
    "ContractTerm",
    "ContractMap",
    "parse_term",
    "format_term",
    "format_dollars",
    "dollar_amount",
    "parse_contract_map",
    "format_contract_map",
    "dfa_release_charges",
    "team_payroll",
    "list_dead_cap",
    "add_dead_cap",
    "delete_dead_cap",
    "list_team_options",
    "exercise_option",
    "decline_option",
    "submit_arbitration",
    "submit_extension",
    "submit_restructure",
    "process_action",
    "list_pending_actions",
]
