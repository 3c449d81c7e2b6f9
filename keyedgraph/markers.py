# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
# Reserved predicates understood by the store itself
UID = "uid"                 # node identity marker
TYPE_TAG = "dgraph.type"    # per-type typing

# Identity references
BLANK_PREFIX = "_:"         # new node, bound when the mutation commits
UID_VAR = "uid({})"         # reference to a query variable in an upsert block
