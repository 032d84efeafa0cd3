"""Spark DataFrame을 ClickHouse 테이블로 적재하는 커넥터 패키지."""
