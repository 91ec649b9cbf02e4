import os
import tempfile

# card_reader.main creates its result store on import
os.environ.setdefault("CARD_READER_OUTPUT_DIR", tempfile.mkdtemp(prefix="card-reader-"))
