from .compiler import compile_tree, decompile_document, document_from_text
from .validation import Finding, FindingKind, check_tree, check_document
