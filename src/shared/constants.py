from enum import Enum

# Радиус Земли для Web Mercator (метры)
EARTH_RADIUS_M = 6378137.0

# Средний радиус Земли для расчёта расстояний по дуге (км)
EARTH_MEAN_RADIUS_KM = 6371.0

# Базовый размер тайла Web Mercator (сэмплов по стороне)
TILE_SIZE = 256

# Фиксированный зум DEM-тайлов
DEM_ZOOM = 7

# Максимальный зум, поддерживаемый источником Terrarium
MAX_DEM_ZOOM = 22

# Предельная широта для точек запросов (градусы)
MERCATOR_LAT_LIMIT_DEG = 85.05

# Широта, на которой проекция Mercator вырождается (градусы)
MERCATOR_SINGULAR_LAT_DEG = 90.0

# Полуразмах долготы (градусы)
WORLD_LNG_HALF_SPAN_DEG = 180.0

# Источник Terrarium-тайлов (AWS Terrain Tiles)
TERRARIUM_TILE_BASE = 'https://s3.amazonaws.com/elevation-tiles-prod/terrarium'
TERRARIUM_TILE_EXT = 'png'

# Смещение кодировки Terrarium (метры)
TERRARIUM_OFFSET_M = 32768.0

# Вертикальное преувеличение рельефа
VERTICAL_EXAGGERATION = 3.0

# Метров рельефа в одной единице модели
METERS_PER_MODEL_UNIT = 1000.0

# Размер модели сцены (единицы модели по стороне)
MODEL_SIZE = 100.0

# Максимальная широта, в которую отображается край модели (градусы)
MODEL_LAT_SPAN_DEG = 85.0

# Число точек профиля высот по умолчанию
PROFILE_SAMPLES = 200

# Минимум точек профиля (начало и конец)
MIN_PROFILE_SAMPLES = 2

# Минимальный размер сетки поля высот
MIN_GRID_RESOLUTION = 2

# HTTP: таймаут, ретраи, пауза между ретраями, параллелизм
HTTP_TIMEOUT_DEFAULT = 20.0
HTTP_RETRIES_DEFAULT = 3
HTTP_BACKOFF_DEFAULT_S = 0.5
HTTP_CONCURRENCY_DEFAULT = 8

# HTTP-кэш ответов (aiohttp-client-cache, SQLite)
HTTP_CACHE_ENABLED = False
HTTP_CACHE_EXPIRE_HOURS = 168
HTTP_CACHE_FILE = 'http_cache.sqlite'

# HTTP статусы
HTTP_OK = 200
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404
HTTP_TOO_MANY_REQUESTS = 429
HTTP_5XX_MIN = 500
HTTP_5XX_MAX = 600

# Уровни классификации местности (метры)
WATER_LEVEL_M = 0.0
MOUNTAIN_LEVEL_M = 1000.0
SNOW_LEVEL_M = 2500.0
# Полоса «песка» над уровнем воды (метры)
SAND_BAND_M = 50.0

# Префикс переменных окружения для настроек
ENV_PREFIX = 'TERRAIN_'

# Логировать память, если поле высот затронуло не меньше стольких тайлов
LOG_MEMORY_EVERY_TILES = 16


class TerrainType(str, Enum):
    """Terrain class derived from elevation."""

    WATER = 'WATER'
    SAND = 'SAND'
    PLAIN = 'PLAIN'
    MOUNTAIN = 'MOUNTAIN'
    SNOW = 'SNOW'


TERRAIN_TYPE_LABELS = {
    TerrainType.WATER: 'Вода',
    TerrainType.SAND: 'Песок',
    TerrainType.PLAIN: 'Равнина',
    TerrainType.MOUNTAIN: 'Горы',
    TerrainType.SNOW: 'Снег',
}
