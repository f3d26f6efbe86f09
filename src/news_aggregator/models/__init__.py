from .news import Article, ArticleSource, NewsResult, NewsQuery, headlines_cache_key  # noqa: F401
from .auth import Credentials, UserOut, AuthResponse  # noqa: F401
from .preferences import PreferencesIn, PreferencesOut  # noqa: F401
