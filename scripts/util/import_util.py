def script_imports():
    import sys
    from pathlib import Path

    # Insert ourselves as the highest-priority library path, so our modules are
    # always found without any risk of being shadowed by another import path.
    # 3 .parent calls to navigate from /scripts/util/import_util.py to the main directory
    tagmeister_lib_path = Path(__file__).absolute().parent.parent.parent
    sys.path.insert(0, str(tagmeister_lib_path))
