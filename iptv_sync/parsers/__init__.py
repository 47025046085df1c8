from .classifier import ContentType, classify, extract_series_info, extract_year
from .m3u import M3uEntry, M3uParser
from .xmltv import XmltvChannel, XmltvParseResult, XmltvParser, XmltvProgramme, parse_xmltv_datetime
