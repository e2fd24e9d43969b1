import sqlite3
import time
from src.trading.trade import TradeRecord

class TradeJournal:
    """Append-only sqlite ledger of settled trades and session markers."""

    def __init__(self, db_path: str):
        self.conn = sqlite3.connect(db_path)
        self._init_db()

    def _init_db(self):
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS trades (
                id            INTEGER PRIMARY KEY AUTOINCREMENT,
                contract_id   TEXT,
                is_win        INTEGER,
                stake         REAL,
                profit        REAL,
                balance_after REAL,
                timestamp     REAL
            )
        """)
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS sessions (
                ts      REAL,
                event   TEXT,
                balance REAL
            )
        """)
        self.conn.commit()

    def save_trade(self, t: TradeRecord):
        self.conn.execute(
            "INSERT INTO trades (contract_id, is_win, stake, profit, balance_after, timestamp) "
            "VALUES (?,?,?,?,?,?)",
            (t.contract_id, int(t.is_win), t.stake, t.profit, t.balance_after, t.timestamp),
        )
        self.conn.commit()

    def load_trades(self, limit: int = 100) -> list[TradeRecord]:
        """Most recent trades, oldest first."""
        cur = self.conn.execute(
            "SELECT is_win, stake, profit, balance_after, timestamp, contract_id "
            "FROM trades ORDER BY id DESC LIMIT ?",
            (limit,),
        )
        rows = cur.fetchall()
        return [
            TradeRecord(
                is_win=bool(is_win), stake=stake, profit=profit,
                balance_after=balance_after, timestamp=ts, contract_id=cid or "",
            )
            for is_win, stake, profit, balance_after, ts, cid in reversed(rows)
        ]

    def mark_session(self, event: str, balance: float):
        self.conn.execute(
            "INSERT INTO sessions VALUES (?,?,?)",
            (time.time(), event, balance),
        )
        self.conn.commit()

    def session_profit(self, since: float) -> float:
        cur = self.conn.execute(
            "SELECT COALESCE(SUM(profit), 0) FROM trades WHERE timestamp >= ?",
            (since,),
        )
        return float(cur.fetchone()[0])

    def recent_win_rate(self, n: int = 50) -> float:
        cur = self.conn.execute(
            "SELECT is_win FROM trades ORDER BY id DESC LIMIT ?",
            (n,),
        )
        rows = cur.fetchall()
        if not rows:
            return 0.5
        wins = sum(1 for r in rows if r[0])
        return wins / len(rows)

    def total_trades(self) -> int:
        cur = self.conn.execute("SELECT COUNT(*) FROM trades")
        return cur.fetchone()[0]

    def close(self):
        self.conn.close()
