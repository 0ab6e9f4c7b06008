"""Entry-time processing: validation, outlier flagging, edit window and mutation policy."""
