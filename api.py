"""
Clinic No-Show API
Корневой файл для запуска приложения
"""

import uvicorn

from clinic_noshow.api import create_application

app = create_application()

if __name__ == "__main__":
    uvicorn.run(
        "api:app",
        host="0.0.0.0",
        port=8080,
        reload=True,
        reload_dirs=["clinic_noshow/"],
        log_level="info"
    )
