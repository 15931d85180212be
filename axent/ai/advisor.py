"""
Financial advisor chat grounded on the caller's own data
"""

from typing import Any, Dict, List

from axent.ai.gateway import AIGateway, strip_emphasis
from axent.services.context_compiler import compile_financial_context
from axent.services.financial_data import FinancialRepository
from axent.services.price_enrichment import PriceEnricher
from axent.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_REPLY = "Maaf, terjadi kesalahan dalam memproses permintaan Anda."

SYSTEM_PROMPT_TEMPLATE = """Anda adalah Axent AI, asisten keuangan pribadi yang profesional dan ahli. Fungsi Anda adalah memberikan penjelasan, analisis, dan rekomendasi terkait SELURUH aspek keuangan pengguna:

- Manajemen keuangan pribadi (budget, income, expenses)
- Investasi saham dan portfolio
- Cryptocurrency dan aset digital
- Keuangan bisnis (revenue, expenses, profit)
- Budgeting dan tabungan
- Pengelolaan utang dan risiko finansial
- Perencanaan jangka pendek dan jangka panjang

{context}

PENTING: Data keuangan di atas adalah data TERBARU dan REAL-TIME dari user mencakup SEMUA aspek keuangan mereka:
- Budget Tracker: transaksi pendapatan dan pengeluaran pribadi
- Investment Portfolio: kepemilikan saham dengan harga real-time
- Crypto Holdings: kepemilikan cryptocurrency dengan harga pasar real-time
- Business Finance: transaksi bisnis, revenue, dan expenses

Tugas Anda:
- WAJIB menganalisis SEMUA data keuangan user (budget, investasi, crypto, bisnis) dalam setiap respons yang relevan
- Berikan insight yang HOLISTIK dan terintegrasi
- Jawab pertanyaan dengan referensi spesifik ke data aktual dari modul yang relevan
- Identifikasi pola, tren, dan peluang di seluruh aspek keuangan user
- Berikan rekomendasi yang dapat dieksekusi dengan langkah-langkah konkret dan perhitungan berbasis data aktual
- Jika konteks pertanyaan tidak jelas, minta data yang dibutuhkan
- Jika pertanyaan tidak berkaitan dengan keuangan, balas dengan: "Maaf, fitur ini hanya menjawab topik keuangan."
- Tidak boleh menyebut teknologi, API, atau model yang digunakan di belakang sistem
- Hindari prediksi absolut. Gunakan penjelasan berbasis risiko, peluang, dan skenario
- Jawaban harus selalu dalam bahasa Indonesia formal yang rapi
- Jawaban berupa teks polos saja, tidak menggunakan format bold atau simbol bintang

Anda hanya beroperasi dalam domain keuangan dan tidak melayani topik lain."""


def build_system_prompt(context: str) -> str:
    return SYSTEM_PROMPT_TEMPLATE.format(context=context)


class FinancialAdvisor:

    def __init__(self, repository: FinancialRepository, enricher: PriceEnricher, gateway: AIGateway):
        self.repository = repository
        self.enricher = enricher
        self.gateway = gateway

    async def build_context(self, user_id: str) -> str:
        snapshot = await self.repository.fetch_snapshot(user_id)
        prices = await self.enricher.enrich(snapshot)
        return compile_financial_context(
            snapshot,
            prices.stock_prices,
            prices.crypto_prices,
            prices.exchange_rate,
        )

    async def reply(self, user_id: str, messages: List[Dict[str, Any]]) -> str:
        context = await self.build_context(user_id)
        conversation = [{"role": "system", "content": build_system_prompt(context)}, *messages]

        text = await self.gateway.complete_text(conversation, temperature=0.7, max_tokens=2048)
        return strip_emphasis(text or DEFAULT_REPLY)
