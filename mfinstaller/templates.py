"""
Generated project files.

The .gitignore, .env.example and README.md of a new project are rendered from
built-in Jinja2 templates rather than taken from the framework repository.
"""

from pathlib import Path
from typing import Any, Dict, List

from jinja2 import Environment, StrictUndefined, TemplateError

from .config import logger
from .exit_codes import TemplateIOError

FRAMEWORK_URL = "https://github.com/nastmz/mini-php-framework"


def get_builtin_templates() -> Dict[str, str]:
    """Get built-in template content, keyed by the file each one produces."""
    return {
        ".gitignore": '''# Dependencies
/vendor/
/node_modules/

# Environment files
.env
.env.local
.env.*.local

# Cache and logs
/storage/cache/*
!/storage/cache/.gitkeep
/storage/logs/*
!/storage/logs/.gitkeep
/logs/*
!/logs/.gitkeep

# Database
/storage/database/*.sqlite
/storage/database/*.db

# Uploads
/storage/uploads/*
!/storage/uploads/.gitkeep
/public/uploads/*
!/public/uploads/.gitkeep

# IDE files
.vscode/
.idea/
*.swp
*.swo
*~

# OS files
.DS_Store
.DS_Store?
._*
.Spotlight-V100
.Trashes
ehthumbs.db
Thumbs.db

# Composer
composer.phar
composer.lock

# PHPUnit
.phpunit.result.cache
/coverage/
/build/

# Temporary files
*.tmp
*.temp
''',

        ".env.example": '''# Application Configuration
APP_NAME="{{ project_name }}"
APP_ENV=development
APP_DEBUG=true
APP_URL=http://localhost:8000
APP_KEY=

# Database Configuration
DB_CONNECTION=sqlite
DB_DATABASE=storage/database/app.sqlite
DB_HOST=localhost
DB_PORT=3306
DB_USERNAME=root
DB_PASSWORD=

# JWT Configuration
JWT_SECRET=
JWT_ALGORITHM=HS256
JWT_EXPIRATION=3600
JWT_REFRESH_EXPIRATION=604800

# Rate Limiting
RATE_LIMIT_ENABLED=true
RATE_LIMIT_MAX_ATTEMPTS=60
RATE_LIMIT_WINDOW=60
RATE_LIMIT_STORAGE=file

# File Upload Configuration
MAX_FILE_SIZE=10M
ALLOWED_EXTENSIONS=jpg,jpeg,png,gif,pdf,txt,doc,docx
UPLOAD_PATH=storage/uploads

# CORS Configuration
CORS_ENABLED=true
CORS_ALLOWED_ORIGINS=*
CORS_ALLOWED_METHODS=GET,POST,PUT,DELETE,OPTIONS
CORS_ALLOWED_HEADERS=Content-Type,Authorization,X-Requested-With
CORS_ALLOW_CREDENTIALS=false

# Security Configuration
CSRF_ENABLED=true
XSS_PROTECTION=true
CONTENT_TYPE_NOSNIFF=true
FRAME_OPTIONS=DENY

# Logging Configuration
LOG_LEVEL=info
LOG_CHANNEL=file
''',

        "README.md": '''# {{ project_name }}

{{ description }}

Built with [MiniFramework PHP]({{ framework_url }}) - A modern PHP micro-framework with DDD and Clean Architecture.

## Quick Start

1. **Install dependencies:**
   ```bash
   composer install
   ```

2. **Set up environment:**
   ```bash
   cp .env.example .env
   php bin/console key:generate
   ```

3. **Initialize database:**
   ```bash
   php bin/console db:setup
   php bin/console migrate
   ```

4. **Start development server:**
   ```bash
   php bin/console serve
   ```

Visit http://localhost:8000 to see your application running!

## Framework Features

{% for feature in features %}
- ✅ {{ feature }}
{% endfor %}

## Development Commands

```bash
# Generate components
php bin/console make:controller UserController
php bin/console make:migration CreateUsersTable
php bin/console make:middleware AuthMiddleware

# Database operations
php bin/console migrate
php bin/console db:setup

# Development tools
php bin/console serve
php bin/console cache:clear
php bin/console test
php bin/console routes:list

# Security
php bin/console key:generate
php bin/console jwt:secret
```

## License

This project is open-sourced software licensed under the [MIT license](LICENSE).
''',
    }


FRAMEWORK_FEATURES = [
    "**Domain-Driven Design (DDD)** architecture",
    "**Clean Architecture** principles",
    "**Dependency Injection** container with autowiring",
    "**Advanced Routing** with attributes and parameters",
    "**Middleware Pipeline** (PSR-15 compatible)",
    "**Rate Limiting** with multiple backends",
    "**CSRF Protection** for forms and AJAX",
    "**JWT Authentication** with refresh tokens",
    "**File Upload System** with validation",
    "**Template Engine** with layouts and components",
    "**Database Migrations** and seeders",
    "**CLI Commands** for development",
    "**Error Handling** with custom pages",
    "**Security Headers** and CORS support",
]


def render_template(template_content: str, data: Dict[str, Any]) -> str:
    """Render a Jinja2 template with the given data.

    Args:
        template_content: The Jinja2 template string
        data: Dictionary of data to pass to the template

    Returns:
        Rendered template string
    """
    # Generated files are plain text, so no autoescaping
    env = Environment(
        autoescape=False,
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
        undefined=StrictUndefined,
    )
    try:
        return env.from_string(template_content).render(**data)
    except TemplateError as e:
        logger.error(f"Template rendering error: {e}")
        raise ValueError(f"Failed to render template: {e}")


def emit(root, options) -> List[Path]:
    """
    Writes the generated files into the project at `root`.

    Existing files at those paths are overwritten.

    Args:
        root: The project directory.
        options: The InstallOptions of the run.

    Returns:
        The paths written, in template order.
    """
    root = Path(root)
    data = {
        "project_name": options.project_name,
        "description": options.description,
        "namespace": options.namespace,
        "framework_url": FRAMEWORK_URL,
        "features": FRAMEWORK_FEATURES,
    }

    written = []
    for filename, content in get_builtin_templates().items():
        path = root / filename
        try:
            path.write_text(render_template(content, data), encoding="utf-8")
        except OSError as e:
            raise TemplateIOError(f"Failed to write {path}: {e}", path=path) from e
        logger.debug(f"Generated {path}")
        written.append(path)
    return written
