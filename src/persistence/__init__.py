"""
결과물 보관 모듈 패키지
"""
