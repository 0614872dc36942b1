# ==============================================
# docsync: MongoDB → Relational Migration & Sync
# ==============================================
#
# Package Structure (topics + orchestrator):
#
# docsync/
# ├── normalization/    # Value classification, flattening, value normalization
# ├── analysis/         # Schema inference over sampled documents
# ├── schema/           # Relational decomposition, type mapping, DDL rendering
# ├── storage/          # MongoDB source, SQL destinations, evolution, bulk loading
# ├── persistence/      # Sync state persisted between runs
# ├── sync/             # Change detection + sync run engine
# ├── validation/       # Source vs destination validation
# ├── config.py         # Configuration management
# ├── errors.py         # Error taxonomy
# ├── migrator.py       # Multi-collection workflow orchestrator
# └── cli.py            # Command line entry point
#
# ==============================================

__version__ = "0.1.0"
