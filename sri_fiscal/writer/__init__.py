"""Writer module for JSON and CSV output.

JSON naming convention: declaraciones_104_2024.json, ats_all_2024.json
CSV output: anual_104_valor_neto_2024.csv with periods as columns
"""

from sri_fiscal.writer.json_writer import (
    ats_summary_to_dict,
    consolidation_to_dict,
    failures_to_list,
    load_output_json,
    record_to_dict,
    save_ats_consolidation,
    save_consolidation,
    write_annual_csv,
)

__all__ = [
    "ats_summary_to_dict",
    "consolidation_to_dict",
    "failures_to_list",
    "load_output_json",
    "record_to_dict",
    "save_ats_consolidation",
    "save_consolidation",
    "write_annual_csv",
]
