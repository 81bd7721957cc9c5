"""File type classification from path extensions."""

from pathlib import PurePath

# extension -> (uniform type identifier, conformance class or None)
_TYPE_TABLE = {
    # images
    "png": ("public.png", "image"),
    "jpg": ("public.jpeg", "image"),
    "jpeg": ("public.jpeg", "image"),
    "gif": ("com.compuserve.gif", "image"),
    "heic": ("public.heic", "image"),
    "tif": ("public.tiff", "image"),
    "tiff": ("public.tiff", "image"),
    "bmp": ("com.microsoft.bmp", "image"),
    "webp": ("org.webmproject.webp", "image"),
    "svg": ("public.svg-image", "image"),
    "ico": ("com.microsoft.ico", "image"),
    "psd": ("com.adobe.photoshop-image", "image"),
    # video
    "mp4": ("public.mpeg-4", "video"),
    "m4v": ("com.apple.m4v-video", "video"),
    "mov": ("com.apple.quicktime-movie", "video"),
    "avi": ("public.avi", "video"),
    "mpg": ("public.mpeg", "video"),
    "mpeg": ("public.mpeg", "video"),
    "mkv": ("org.matroska.mkv", "video"),
    "webm": ("org.webmproject.webm", "video"),
    # audio
    "mp3": ("public.mp3", "audio"),
    "wav": ("com.microsoft.waveform-audio", "audio"),
    "aif": ("public.aiff-audio", "audio"),
    "aiff": ("public.aiff-audio", "audio"),
    "m4a": ("com.apple.m4a-audio", "audio"),
    "aac": ("public.aac-audio", "audio"),
    "flac": ("org.xiph.flac", "audio"),
    "ogg": ("org.xiph.ogg-audio", "audio"),
    # pdf
    "pdf": ("com.adobe.pdf", "pdf"),
    # text, including source code and markup
    "txt": ("public.plain-text", "text"),
    "text": ("public.plain-text", "text"),
    "md": ("net.daringfireball.markdown", "text"),
    "rtf": ("public.rtf", "text"),
    "csv": ("public.comma-separated-values-text", "text"),
    "tsv": ("public.tab-separated-values-text", "text"),
    "log": ("com.apple.log", "text"),
    "html": ("public.html", "text"),
    "htm": ("public.html", "text"),
    "css": ("public.css", "text"),
    "xml": ("public.xml", "text"),
    "json": ("public.json", "text"),
    "yaml": ("public.yaml", "text"),
    "yml": ("public.yaml", "text"),
    "js": ("com.netscape.javascript-source", "text"),
    "py": ("public.python-script", "text"),
    "sh": ("public.shell-script", "text"),
    "swift": ("public.swift-source", "text"),
    "c": ("public.c-source", "text"),
    "h": ("public.c-header", "text"),
    "cpp": ("public.c-plus-plus-source", "text"),
    "m": ("public.objective-c-source", "text"),
    "java": ("com.sun.java-source", "text"),
    "rb": ("public.ruby-script", "text"),
    # zip
    "zip": ("public.zip-archive", "zip"),
    # everything below reports its identifier
    "doc": ("com.microsoft.word.doc", None),
    "docx": ("org.openxmlformats.wordprocessingml.document", None),
    "xls": ("com.microsoft.excel.xls", None),
    "xlsx": ("org.openxmlformats.spreadsheetml.sheet", None),
    "ppt": ("com.microsoft.powerpoint.ppt", None),
    "pptx": ("org.openxmlformats.presentationml.presentation", None),
    "key": ("com.apple.keynote.key", None),
    "pages": ("com.apple.iwork.pages.sffpages", None),
    "numbers": ("com.apple.iwork.numbers.sffnumbers", None),
    "rar": ("com.rarlab.rar-archive", None),
    "gz": ("org.gnu.gnu-zip-archive", None),
    "tar": ("public.tar-archive", None),
    "7z": ("org.7-zip.7-zip-archive", None),
    "dmg": ("com.apple.disk-image-udif", None),
    "app": ("com.apple.application-bundle", None),
    "pkg": ("com.apple.installer-package-archive", None),
    "epub": ("org.idpf.epub-container", None),
}

# Display icons keyed by classification or identifier extension
TYPE_EMOJIS = {
    "pdf": "📄", "text": "📄", "image": "🖼️", "audio": "🎵", "video": "🎞️",
    "zip": "🗜️",
    "doc": "📝", "docx": "📝",
    "xls": "📊", "xlsx": "📊", "key": "📊",
    "ppt": "📈", "pptx": "📈", "numbers": "📈",
    "pages": "📄",
    "rar": "🗜️",
    "html": "🌐", "css": "🎨", "js": "📜",
    "swift": "🦅", "py": "🐍", "java": "☕️", "c": "🔧", "cpp": "🔧",
    "json": "🔣", "xml": "🗂️",
}

CLOUD_PLACEHOLDER_SUFFIX = ".icloud"


def determine_file_type(path: str) -> str:
    """Classify ``path`` as image/video/audio/pdf/text/zip, a UTI, or unknown."""
    pure = PurePath(path)
    if pure.suffix.lower() == CLOUD_PLACEHOLDER_SUFFIX:
        pure = pure.with_suffix("")

    extension = pure.suffix[1:].lower()
    entry = _TYPE_TABLE.get(extension)
    if entry is None:
        return "unknown"

    identifier, conformance = entry
    return conformance or identifier


def type_emoji(file_type: str, path: str = "") -> str:
    if file_type in TYPE_EMOJIS:
        return TYPE_EMOJIS[file_type]
    extension = PurePath(path).suffix[1:].lower()
    return TYPE_EMOJIS.get(extension, "📁")
