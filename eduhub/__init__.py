"""EduHub 学习管理平台后端。"""
