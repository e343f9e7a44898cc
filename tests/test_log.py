import logging

from api_codegen.log import CORE, LOADERS, _CategoryFormatter, configure_logging, get_logger


class TestLogging:
    def test_category_prefix(self):
        formatter = _CategoryFormatter("%(message)s")
        record = logging.LogRecord("api_codegen.loaders", logging.INFO, __file__, 1, "loaded %s", ("a.yaml",), None)
        assert formatter.format(record) == "[LOADERS] loaded a.yaml"

    def test_errors_are_marked(self):
        formatter = _CategoryFormatter("%(message)s")
        record = logging.LogRecord("api_codegen.core", logging.ERROR, __file__, 1, "boom", None, None)
        assert formatter.format(record) == "ERROR: [CORE] boom"

    def test_only_selected_categories_log(self):
        try:
            configure_logging(categories=[CORE])
            assert get_logger(LOADERS).disabled is True
            assert get_logger(CORE).disabled is False
        finally:
            configure_logging()
        assert get_logger(LOADERS).disabled is False
