"""playout_lib: PDF layout reconstruction (lines, columns, blocks, lists, tables)."""
