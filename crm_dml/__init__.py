# ==============================================
# CRM DML Exercises
# ==============================================
#
# Package Structure:
#
# crm_dml/
# ├── records/     # Typed CRM records (Account, Contact, ...) + id generator
# ├── storage/     # Record stores: in-memory, MySQL, MongoDB
# ├── dml/         # DML exercises + key-matched linker
# ├── loader.py    # Load records over HTTP
# ├── errors.py    # Exception hierarchy
# ├── config.py    # Configuration management
# └── cli.py       # Command line entry point
#
# ==============================================

__version__ = "0.1.0"
